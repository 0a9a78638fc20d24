"""Application-layer errors – wiring and configuration concerns."""

from __future__ import annotations

from eventcore.kernel.errors.base import BaseError


class ApplicationError(BaseError):
    """Failure in how the library is assembled or driven by the host."""

    default_code = "application_error"


__all__ = ["ApplicationError"]
