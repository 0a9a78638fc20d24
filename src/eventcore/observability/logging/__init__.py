"""Observability – structlog configuration and helpers."""
from eventcore.observability.logging.factory import JsonLoggerFactory
from eventcore.observability.logging.processors import CorrelationProcessor, get_logger

__all__ = ["CorrelationProcessor", "JsonLoggerFactory", "get_logger"]
