"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError              (domain.py)
    │   ├── InvariantViolationError
    │   ├── ValidationError
    │   └── ConflictError
    ├── ApplicationError         (application.py)
    └── InfrastructureError      (infrastructure.py)
        ├── SerializationError
        └── StorageUnavailableError

Event-sourcing specific errors (concurrency conflicts, unknown event types,
replay failures) extend this tree in
:mod:`eventcore.application.event_sourcing.errors`.
"""

from eventcore.kernel.errors.application import ApplicationError
from eventcore.kernel.errors.base import BaseError
from eventcore.kernel.errors.domain import (
    ConflictError,
    DomainError,
    InvariantViolationError,
    ValidationError,
)
from eventcore.kernel.errors.infrastructure import (
    InfrastructureError,
    SerializationError,
    StorageUnavailableError,
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
