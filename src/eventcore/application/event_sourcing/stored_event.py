"""Application event sourcing – StoredEvent and UncommittedEvent."""

from __future__ import annotations

import dataclasses
import types
from datetime import datetime
from typing import Any, Mapping
from uuid import uuid4

from eventcore.kernel.time.clock import utc_now


@dataclasses.dataclass(frozen=True)
class UncommittedEvent:
    """An encoded event on its way into the store.

    Carries everything a :class:`StoredEvent` does except the sequence
    number, which only the store may assign.
    """

    aggregate_id: str
    aggregate_type: str
    event_type: str
    payload: bytes
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    event_id: str = dataclasses.field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = dataclasses.field(default_factory=utc_now)

    def sequenced(self, sequence_number: int) -> "StoredEvent":
        """Return the persisted form of this event at *sequence_number*."""
        return StoredEvent(
            aggregate_id=self.aggregate_id,
            sequence_number=sequence_number,
            event_type=self.event_type,
            payload=self.payload,
            aggregate_type=self.aggregate_type,
            metadata=dict(self.metadata),
            event_id=self.event_id,
            occurred_at=self.occurred_at,
        )


@dataclasses.dataclass(frozen=True)
class StoredEvent:
    """An event as persisted in the event store.

    ``payload`` is the codec output for the original domain event (JSON
    bytes).  ``metadata`` carries infrastructure concerns such as the
    correlation id.  It is exposed as a read-only mapping so a loaded event
    cannot be edited behind the store's back.
    """

    aggregate_id: str
    """Identifies the stream this event belongs to."""

    sequence_number: int
    """1-based, gap-free position within the aggregate's stream."""

    event_type: str
    """Discriminator naming the event variant."""

    payload: bytes
    """Serialised variant fields."""

    aggregate_type: str = ""
    """Name of the aggregate class that produced the event."""

    metadata: Mapping[str, Any] = dataclasses.field(default_factory=dict)

    event_id: str = dataclasses.field(default_factory=lambda: str(uuid4()))

    occurred_at: datetime = dataclasses.field(default_factory=utc_now)
    """When the domain operation produced the event."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", types.MappingProxyType(dict(self.metadata)))


__all__ = ["StoredEvent", "UncommittedEvent"]
