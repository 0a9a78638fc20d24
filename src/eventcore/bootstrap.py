"""Wiring helpers – turn :class:`EventStoreSettings` into live components."""
from __future__ import annotations

from typing import Mapping

from eventcore.application.event_sourcing import (
    EventStore,
    InMemoryEventStore,
    InMemorySnapshotStore,
    SnapshotStore,
)
from eventcore.config import EnvSettingsLoader, EventStoreSettings
from eventcore.observability.logging import JsonLoggerFactory, get_logger

logger = get_logger(__name__)


def load_settings(environ: Mapping[str, str] | None = None) -> EventStoreSettings:
    """Read :class:`EventStoreSettings` from *environ* (``os.environ`` by default)."""
    return EnvSettingsLoader(environ).load(EventStoreSettings)


def configure_logging(settings: EventStoreSettings) -> None:
    JsonLoggerFactory.configure(settings.log_level, json=settings.log_json)


async def create_event_store(settings: EventStoreSettings) -> EventStore:
    """Build the configured store; the caller owns it and must ``close()`` it."""
    if settings.backend == "sqlalchemy":
        from eventcore.adapters.sqlalchemy import SQLAlchemyEventStore

        store: EventStore = await SQLAlchemyEventStore.from_url(settings.database_url)
    else:
        store = InMemoryEventStore()
    logger.info("event_store.created", backend=settings.backend)
    return store


def create_snapshot_store(settings: EventStoreSettings) -> SnapshotStore | None:
    """An in-memory snapshot store when snapshots are enabled, else ``None``."""
    if settings.snapshot_every <= 0:
        return None
    return InMemorySnapshotStore()


__all__ = [
    "configure_logging",
    "create_event_store",
    "create_snapshot_store",
    "load_settings",
]
