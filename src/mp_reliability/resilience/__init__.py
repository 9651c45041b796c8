"""Resilience – backoff, retry decisions, circuit breaker, timeouts, bulkhead."""
