"""Resilience – per-operation Circuit Breaker."""
from mp_reliability.resilience.circuit_breaker.errors import CircuitOpenError
from mp_reliability.resilience.circuit_breaker.state import CircuitPhase, CircuitState
from mp_reliability.resilience.circuit_breaker.policy import CircuitBreakerPolicy
from mp_reliability.resilience.circuit_breaker.breaker import CircuitBreaker

__all__ = ["CircuitBreaker", "CircuitBreakerPolicy", "CircuitOpenError", "CircuitPhase", "CircuitState"]
