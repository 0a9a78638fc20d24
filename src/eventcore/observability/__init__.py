"""Observability – correlation context and structured logging."""

from eventcore.observability.correlation import CorrelationContext, RequestContext
from eventcore.observability.logging import CorrelationProcessor, JsonLoggerFactory, get_logger

__all__ = [
    "CorrelationContext",
    "CorrelationProcessor",
    "JsonLoggerFactory",
    "RequestContext",
    "get_logger",
]
