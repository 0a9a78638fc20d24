"""Application – Event Sourcing."""

from eventcore.application.event_sourcing.aggregate import EventSourcedAggregate, applies
from eventcore.application.event_sourcing.codec import EventCodec
from eventcore.application.event_sourcing.errors import (
    ConcurrencyConflictError,
    ReplayError,
    UnknownEventTypeError,
)
from eventcore.application.event_sourcing.repository import EventSourcedRepository
from eventcore.application.event_sourcing.snapshot import (
    InMemorySnapshotStore,
    SnapshotRecord,
    SnapshotStore,
)
from eventcore.application.event_sourcing.store import EventStore, InMemoryEventStore
from eventcore.application.event_sourcing.stored_event import StoredEvent, UncommittedEvent

__all__ = [
    "ConcurrencyConflictError",
    "EventCodec",
    "EventSourcedAggregate",
    "EventSourcedRepository",
    "EventStore",
    "InMemoryEventStore",
    "InMemorySnapshotStore",
    "ReplayError",
    "SnapshotRecord",
    "SnapshotStore",
    "StoredEvent",
    "UncommittedEvent",
    "UnknownEventTypeError",
    "applies",
]
