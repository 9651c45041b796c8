"""Resilience – bounded concurrency."""
from mp_reliability.resilience.bulkhead.limiters import ConcurrencyLimiter

__all__ = ["ConcurrencyLimiter"]
