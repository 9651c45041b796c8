"""Observability – structured logging helpers."""
from mp_reliability.observability.logging.factory import JsonLoggerFactory
from mp_reliability.observability.logging.processors import get_logger, operation_log_context

__all__ = ["JsonLoggerFactory", "get_logger", "operation_log_context"]
