"""Application event sourcing – EventStore port and InMemoryEventStore."""

from __future__ import annotations

import abc
import asyncio
import contextlib
from typing import AsyncIterator, Sequence

from eventcore.application.event_sourcing.errors import ConcurrencyConflictError
from eventcore.application.event_sourcing.stored_event import StoredEvent, UncommittedEvent
from eventcore.kernel.errors.domain import ValidationError
from eventcore.observability.logging import get_logger

logger = get_logger(__name__)


class EventStore(abc.ABC):
    """Port – durable append-only event store partitioned by aggregate id.

    ``expected_version`` drives **optimistic concurrency control**:

    - Pass ``0`` when the aggregate has no history yet.
    - Pass the version the caller last observed otherwise.
    - The store raises :class:`ConcurrencyConflictError` and writes nothing
      when the stream's actual version differs.

    The store, never the caller, assigns sequence numbers.
    """

    @abc.abstractmethod
    async def append(
        self,
        aggregate_id: str,
        expected_version: int,
        events: Sequence[UncommittedEvent],
    ) -> int:
        """Append *events* atomically and return the new stream version."""

    @abc.abstractmethod
    async def load_stream_from(
        self,
        aggregate_id: str,
        after_version: int,
    ) -> list[StoredEvent]:
        """Events of *aggregate_id* with ``sequence_number > after_version``, in order."""

    @abc.abstractmethod
    async def stream_version(self, aggregate_id: str) -> int:
        """Highest sequence number stored for *aggregate_id* (0 when unknown)."""

    async def load_stream(self, aggregate_id: str) -> list[StoredEvent]:
        """Full history of *aggregate_id*; empty for an unknown id."""
        return await self.load_stream_from(aggregate_id, 0)

    async def close(self) -> None:
        """Release connections or other resources held by the store."""

    @staticmethod
    def _check_append(
        aggregate_id: str,
        expected_version: int,
        events: Sequence[UncommittedEvent],
    ) -> None:
        if not events:
            raise ValidationError("append() requires at least one event")
        if expected_version < 0:
            raise ValidationError(f"expected_version must be >= 0, got {expected_version}")
        strays = sorted({e.aggregate_id for e in events if e.aggregate_id != aggregate_id})
        if strays:
            raise ValidationError(
                f"Events for {strays} cannot be appended to aggregate '{aggregate_id}'"
            )


class AggregateLocks:
    """One :class:`asyncio.Lock` per aggregate id, alive only while in use.

    ``async with locks(aggregate_id):`` serialises callers on the same id.
    The lock is dropped once its last holder or waiter leaves, so the map
    only ever holds ids with an append in flight.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def __call__(self, aggregate_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(aggregate_id)
        if lock is None:
            lock = self._locks[aggregate_id] = asyncio.Lock()
        self._users[aggregate_id] = self._users.get(aggregate_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[aggregate_id] -= 1
            if not self._users[aggregate_id]:
                del self._users[aggregate_id]
                del self._locks[aggregate_id]

    def __len__(self) -> int:
        return len(self._locks)


class InMemoryEventStore(EventStore):
    """In-memory :class:`EventStore` for tests and single-process hosts.

    Appends to the same aggregate are serialised by a per-aggregate
    :class:`asyncio.Lock`; different aggregates never wait on each other.
    Readers take no lock: a stream is only ever replaced by ``list +
    list`` under the lock, so a reader sees it wholly before or wholly after
    an append.
    """

    def __init__(self) -> None:
        # aggregate_id → ordered events, index i holds sequence number i + 1
        self._streams: dict[str, list[StoredEvent]] = {}
        self._lock_for = AggregateLocks()

    async def append(
        self,
        aggregate_id: str,
        expected_version: int,
        events: Sequence[UncommittedEvent],
    ) -> int:
        self._check_append(aggregate_id, expected_version, events)
        async with self._lock_for(aggregate_id):
            stream = self._streams.get(aggregate_id, [])
            actual_version = len(stream)
            if actual_version != expected_version:
                logger.warning(
                    "event_store.concurrency_conflict",
                    aggregate_id=aggregate_id,
                    expected_version=expected_version,
                    actual_version=actual_version,
                )
                raise ConcurrencyConflictError(aggregate_id, expected_version, actual_version)

            sequenced = [
                event.sequenced(expected_version + offset)
                for offset, event in enumerate(events, start=1)
            ]
            self._streams[aggregate_id] = stream + sequenced

        new_version = expected_version + len(sequenced)
        logger.debug(
            "event_store.appended",
            aggregate_id=aggregate_id,
            from_version=expected_version,
            to_version=new_version,
            event_types=[e.event_type for e in sequenced],
        )
        return new_version

    async def load_stream_from(
        self,
        aggregate_id: str,
        after_version: int,
    ) -> list[StoredEvent]:
        stream = self._streams.get(aggregate_id, [])
        return list(stream[max(after_version, 0):])

    async def stream_version(self, aggregate_id: str) -> int:
        return len(self._streams.get(aggregate_id, []))

    def all_events(self, aggregate_id: str | None = None) -> list[StoredEvent]:
        """Every stored event, optionally restricted to one aggregate."""
        if aggregate_id is not None:
            return list(self._streams.get(aggregate_id, []))
        return [e for stream in self._streams.values() for e in stream]

    def aggregate_ids(self) -> list[str]:
        return list(self._streams)


__all__ = ["AggregateLocks", "EventStore", "InMemoryEventStore"]
