"""Kernel – framework-agnostic building blocks."""

from eventcore.kernel.errors import (
    ApplicationError,
    BaseError,
    ConflictError,
    DomainError,
    InfrastructureError,
    InvariantViolationError,
    SerializationError,
    StorageUnavailableError,
    ValidationError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "ConflictError",
    "DomainError",
    "InfrastructureError",
    "InvariantViolationError",
    "SerializationError",
    "StorageUnavailableError",
    "ValidationError",
]
