"""
mp_reliability – test-reliability engine.

Import path convention::

    from mp_reliability import ReliabilityEngine
    from mp_reliability.resilience.circuit_breaker import CircuitBreaker
    from mp_reliability.analysis.flakiness import FlakinessAnalyzer
    from mp_reliability.kernel.errors import ErrorKind, classify
"""

from mp_reliability.engine import ReliabilityEngine

__version__ = "0.1.0"
__all__ = ["ReliabilityEngine", "__version__"]
