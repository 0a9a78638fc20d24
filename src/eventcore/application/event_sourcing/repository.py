"""Application event sourcing – EventSourcedRepository."""

from __future__ import annotations

import abc
import json
from typing import Any, Callable, Generic, TypeVar

from eventcore.application.event_sourcing.aggregate import EventSourcedAggregate
from eventcore.application.event_sourcing.snapshot import SnapshotStore
from eventcore.application.event_sourcing.store import EventStore
from eventcore.application.event_sourcing.stored_event import UncommittedEvent
from eventcore.kernel.ddd.domain_event import DomainEvent
from eventcore.kernel.errors.application import ApplicationError
from eventcore.kernel.errors.infrastructure import InfrastructureError, SerializationError
from eventcore.kernel.time.clock import Clock
from eventcore.kernel.types.ids import EntityId
from eventcore.observability.correlation import CorrelationContext
from eventcore.observability.logging import get_logger

T = TypeVar("T", bound=EventSourcedAggregate)

logger = get_logger(__name__)


def _correlation_metadata(event: DomainEvent) -> dict[str, Any]:  # noqa: ARG001
    """Stamp the active request context (if any) onto each event."""
    ctx = CorrelationContext.get()
    return ctx.as_metadata() if ctx is not None else {}


class EventSourcedRepository(Generic[T], abc.ABC):
    """Loads aggregates by replaying their stream and saves their pending events.

    Subclasses implement :meth:`_aggregate_class`; override
    :meth:`_create_empty` when the aggregate needs more than an id and a
    clock to be constructed.

    Example::

        class AccountRepository(EventSourcedRepository[BankAccount]):
            def _aggregate_class(self) -> type[BankAccount]:
                return BankAccount

        repo = AccountRepository(store=InMemoryEventStore())
        account = await repo.load(account_id)
        account.deposit(Decimal("100"))
        await repo.save(account)

    A ``ConcurrencyConflictError`` from :meth:`save` leaves the aggregate
    untouched; the caller reloads, re-runs the command and saves again.
    """

    def __init__(
        self,
        store: EventStore,
        *,
        snapshot_store: SnapshotStore | None = None,
        snapshot_every: int = 0,
        metadata_factory: Callable[[DomainEvent], dict[str, Any]] | None = None,
        clock: Clock | None = None,
    ) -> None:
        if snapshot_every < 0:
            raise ApplicationError(f"snapshot_every must be >= 0, got {snapshot_every}")
        if snapshot_store is not None and not self._aggregate_class().supports_snapshots():
            raise ApplicationError(
                f"{self._aggregate_class().__name__} does not implement snapshot hooks"
            )
        self._store = store
        self._snapshot_store = snapshot_store
        self._snapshot_every = snapshot_every
        self._metadata_factory = metadata_factory or _correlation_metadata
        self._clock = clock

    @abc.abstractmethod
    def _aggregate_class(self) -> type[T]:
        """Return the concrete aggregate type."""

    def _create_empty(self, agg_id: EntityId) -> T:
        """Return a zero-state aggregate with *agg_id*."""
        return self._aggregate_class()(agg_id, clock=self._clock)

    @property
    def snapshots_enabled(self) -> bool:
        return self._snapshot_store is not None and self._snapshot_every > 0

    async def load(self, agg_id: EntityId | str) -> T:
        """Rebuild the aggregate from its history.

        An id with no history yields a zero-state aggregate at version 0;
        whether that is an error is the caller's call.
        """
        if not isinstance(agg_id, EntityId):
            agg_id = EntityId(agg_id)
        agg = self._create_empty(agg_id)
        key = str(agg_id)

        after_version = 0
        snapshot_store = self._snapshot_store if self.snapshots_enabled else None
        if snapshot_store is not None:
            after_version = await self._restore_snapshot(snapshot_store, agg)

        events = await self._store.load_stream_from(key, after_version)
        agg.load_from_history(events)
        logger.debug(
            "repository.loaded",
            aggregate_type=agg.aggregate_type(),
            aggregate_id=key,
            version=agg.version,
            replayed=len(events),
            from_snapshot=after_version,
        )
        return agg

    async def save(self, agg: T) -> int:
        """Append pending events under a version check; return the new version."""
        pending = agg.pending_events()
        if not pending:
            return agg.version

        key = str(agg.id)
        codec = agg.codec()
        aggregate_type = agg.aggregate_type()
        uncommitted = [
            UncommittedEvent(
                aggregate_id=key,
                aggregate_type=aggregate_type,
                event_type=event.event_type,
                payload=codec.encode(event),
                metadata=self._metadata_factory(event),
                event_id=event.event_id,
                occurred_at=event.occurred_at,
            )
            for event in pending
        ]

        expected_version = agg.persisted_version
        new_version = await self._store.append(key, expected_version, uncommitted)
        agg.mark_persisted()
        logger.info(
            "repository.saved",
            aggregate_type=aggregate_type,
            aggregate_id=key,
            from_version=expected_version,
            to_version=new_version,
        )

        snapshot_store = self._snapshot_store if self.snapshots_enabled else None
        if snapshot_store is not None and (
            new_version // self._snapshot_every > expected_version // self._snapshot_every
        ):
            await self._take_snapshot(snapshot_store, agg)
        return new_version

    async def _restore_snapshot(self, snapshot_store: SnapshotStore, agg: T) -> int:
        record = await snapshot_store.latest(str(agg.id))
        if record is None:
            return 0
        try:
            state = json.loads(record.state_bytes)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SerializationError(
                f"Snapshot of '{agg.id}' at version {record.version} is not valid JSON",
                payload_type="snapshot",
                cause=exc,
            ) from exc
        agg.restore_snapshot(state, record.version)
        return record.version

    async def _take_snapshot(self, snapshot_store: SnapshotStore, agg: T) -> None:
        state_bytes = json.dumps(
            agg.snapshot_state(), sort_keys=True, separators=(",", ":")
        ).encode()
        try:
            await snapshot_store.take(str(agg.id), agg.version, state_bytes)
        except InfrastructureError as exc:
            # The events are already durable; a missing snapshot only costs replay time.
            logger.warning(
                "repository.snapshot_failed",
                aggregate_id=str(agg.id),
                version=agg.version,
                error=exc.to_dict(),
            )
            return
        logger.debug("repository.snapshot_taken", aggregate_id=str(agg.id), version=agg.version)


__all__ = ["EventSourcedRepository"]
