"""Observability – RequestContext, CorrelationContext.

The active context is stamped onto log lines by
:class:`~eventcore.observability.logging.CorrelationProcessor` and onto event
metadata by :class:`~eventcore.application.event_sourcing.EventSourcedRepository`.
"""
from __future__ import annotations

import contextlib
import dataclasses
from contextvars import ContextVar
from typing import Any, Iterator
from uuid import uuid4


@dataclasses.dataclass(frozen=True)
class RequestContext:
    """Ambient context for a single command execution."""
    correlation_id: str
    causation_id: str | None = None
    user_id: str | None = None

    @classmethod
    def new(cls, causation_id: str | None = None, user_id: str | None = None) -> "RequestContext":
        return cls(correlation_id=str(uuid4()), causation_id=causation_id, user_id=user_id)

    def as_metadata(self) -> dict[str, Any]:
        """Non-empty fields only, suitable for event metadata."""
        return {k: v for k, v in dataclasses.asdict(self).items() if v is not None}


_CTX_VAR: ContextVar[RequestContext | None] = ContextVar("_eventcore_request_ctx", default=None)


class CorrelationContext:
    """Ambient correlation context stored in a ``ContextVar``."""

    @staticmethod
    def set(ctx: RequestContext) -> None:
        _CTX_VAR.set(ctx)

    @staticmethod
    def get() -> RequestContext | None:
        return _CTX_VAR.get()

    @staticmethod
    def clear() -> None:
        _CTX_VAR.set(None)

    @staticmethod
    @contextlib.contextmanager
    def scope(ctx: RequestContext | None = None) -> Iterator[RequestContext]:
        """Activate *ctx* (or a fresh one) for the duration of the block."""
        active = ctx or RequestContext.new()
        token = _CTX_VAR.set(active)
        try:
            yield active
        finally:
            _CTX_VAR.reset(token)


__all__ = ["CorrelationContext", "RequestContext"]
