"""Observability – structured logging and environment sampling."""
