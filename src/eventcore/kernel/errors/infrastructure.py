"""Infrastructure errors – storage and serialisation failures."""

from __future__ import annotations

from typing import Any

from eventcore.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a business rule violation."""

    default_code = "infrastructure_error"


class SerializationError(InfrastructureError):
    """Failed to serialise or deserialise an event payload."""

    default_code = "serialization_error"

    def __init__(
        self,
        message: str,
        *,
        payload_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.payload_type = payload_type


class StorageUnavailableError(InfrastructureError):
    """The durable medium behind an event store cannot be read or written.

    Surfaced as-is; retrying is left to the host application.
    """

    default_code = "storage_unavailable"

    def __init__(
        self,
        resource: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message or f"Storage '{resource}' is unavailable", **kwargs)
        self.resource = resource


__all__ = [
    "InfrastructureError",
    "SerializationError",
    "StorageUnavailableError",
]
