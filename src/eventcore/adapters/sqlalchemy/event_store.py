"""SQLAlchemy adapter – SQLAlchemyEventStore."""
from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, Callable, Sequence

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    insert,
    select,
)
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from eventcore.adapters.sqlalchemy.session import SqlAlchemySessionFactory
from eventcore.application.event_sourcing.errors import ConcurrencyConflictError
from eventcore.application.event_sourcing.store import AggregateLocks, EventStore
from eventcore.application.event_sourcing.stored_event import StoredEvent, UncommittedEvent
from eventcore.kernel.errors.infrastructure import StorageUnavailableError
from eventcore.observability.logging import get_logger

logger = get_logger(__name__)

metadata = MetaData()

domain_events = Table(
    "domain_events",
    metadata,
    Column("event_id", String(64), primary_key=True),
    Column("aggregate_id", String(256), nullable=False, index=True),
    Column("aggregate_type", String(256), nullable=False, default=""),
    Column("sequence_number", Integer, nullable=False),
    Column("event_type", String(256), nullable=False),
    Column("payload", LargeBinary, nullable=False),
    Column("metadata_json", Text, nullable=False, default="{}"),
    Column("occurred_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint(
        "aggregate_id", "sequence_number", name="uq_domain_events_aggregate_sequence"
    ),
)


def _as_utc(value: datetime) -> datetime:
    # SQLite stores naive timestamps; every stored value is UTC.
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class SQLAlchemyEventStore(EventStore):
    """Append-only event store on a single ``domain_events`` table.

    The ``(aggregate_id, sequence_number)`` pair is ``UNIQUE``.  Inside one
    process, appends to the same aggregate are serialised by a per-aggregate
    lock; across processes the constraint turns the losing insert into a
    :class:`ConcurrencyConflictError`.  Each ``append`` runs in its own
    transaction, so a batch is committed whole or not at all.

    Parameters
    ----------
    session_factory:
        Zero-argument callable returning a fresh
        :class:`~sqlalchemy.ext.asyncio.AsyncSession`, e.g. an
        ``async_sessionmaker`` or a :class:`SqlAlchemySessionFactory`.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory
        self._lock_for = AggregateLocks()
        self._owned_factory: SqlAlchemySessionFactory | None = None

    @classmethod
    async def from_url(cls, database_url: str, **engine_kwargs: Any) -> "SQLAlchemyEventStore":
        """Build a store with its own engine and make sure the table exists."""
        factory = SqlAlchemySessionFactory(database_url, **engine_kwargs)
        try:
            await cls.create_table(factory.engine)
        except DBAPIError as exc:
            await factory.dispose()
            raise StorageUnavailableError(
                domain_events.name, f"Cannot prepare event table: {exc}", cause=exc
            ) from exc
        store = cls(factory)
        store._owned_factory = factory
        return store

    async def close(self) -> None:
        if self._owned_factory is not None:
            await self._owned_factory.dispose()
            self._owned_factory = None

    @staticmethod
    async def create_table(engine: AsyncEngine) -> None:
        """Create ``domain_events`` if it does not exist yet."""
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    # ------------------------------------------------------------------
    # EventStore interface
    # ------------------------------------------------------------------

    async def append(
        self,
        aggregate_id: str,
        expected_version: int,
        events: Sequence[UncommittedEvent],
    ) -> int:
        self._check_append(aggregate_id, expected_version, events)
        sequenced = [
            event.sequenced(expected_version + offset)
            for offset, event in enumerate(events, start=1)
        ]
        async with self._lock_for(aggregate_id):
            try:
                async with self._session_factory() as session, session.begin():
                    actual_version = await self._current_version(session, aggregate_id)
                    if actual_version != expected_version:
                        raise ConcurrencyConflictError(
                            aggregate_id, expected_version, actual_version
                        )
                    await session.execute(
                        insert(domain_events), [self._to_row(e) for e in sequenced]
                    )
            except ConcurrencyConflictError as exc:
                self._log_conflict(exc)
                raise
            except IntegrityError as exc:
                # Another process committed the same sequence numbers first.
                conflict = ConcurrencyConflictError(
                    aggregate_id, expected_version, await self.stream_version(aggregate_id)
                )
                self._log_conflict(conflict)
                raise conflict from exc
            except DBAPIError as exc:
                raise StorageUnavailableError(
                    domain_events.name, f"Appending to '{aggregate_id}' failed: {exc}", cause=exc
                ) from exc

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
        stmt = (
            select(domain_events)
            .where(domain_events.c.aggregate_id == aggregate_id)
            .where(domain_events.c.sequence_number > after_version)
            .order_by(domain_events.c.sequence_number)
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).fetchall()
        except DBAPIError as exc:
            raise StorageUnavailableError(
                domain_events.name, f"Reading '{aggregate_id}' failed: {exc}", cause=exc
            ) from exc
        return [self._from_row(row) for row in rows]

    async def stream_version(self, aggregate_id: str) -> int:
        try:
            async with self._session_factory() as session:
                return await self._current_version(session, aggregate_id)
        except DBAPIError as exc:
            raise StorageUnavailableError(
                domain_events.name, f"Reading '{aggregate_id}' failed: {exc}", cause=exc
            ) from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _current_version(session: AsyncSession, aggregate_id: str) -> int:
        stmt = select(func.coalesce(func.max(domain_events.c.sequence_number), 0)).where(
            domain_events.c.aggregate_id == aggregate_id
        )
        return int((await session.execute(stmt)).scalar_one())

    @staticmethod
    def _to_row(event: StoredEvent) -> dict[str, Any]:
        return {
            "event_id": event.event_id,
            "aggregate_id": event.aggregate_id,
            "aggregate_type": event.aggregate_type,
            "sequence_number": event.sequence_number,
            "event_type": event.event_type,
            "payload": event.payload,
            "metadata_json": json.dumps(dict(event.metadata), sort_keys=True, default=str),
            "occurred_at": _as_utc(event.occurred_at).astimezone(UTC),
        }

    @staticmethod
    def _from_row(row: Any) -> StoredEvent:
        return StoredEvent(
            aggregate_id=row.aggregate_id,
            sequence_number=row.sequence_number,
            event_type=row.event_type,
            payload=bytes(row.payload),
            aggregate_type=row.aggregate_type,
            metadata=json.loads(row.metadata_json) if row.metadata_json else {},
            event_id=row.event_id,
            occurred_at=_as_utc(row.occurred_at),
        )

    @staticmethod
    def _log_conflict(exc: ConcurrencyConflictError) -> None:
        logger.warning(
            "event_store.concurrency_conflict",
            aggregate_id=exc.aggregate_id,
            expected_version=exc.expected,
            actual_version=exc.actual,
        )


__all__ = ["SQLAlchemyEventStore", "domain_events", "metadata"]
