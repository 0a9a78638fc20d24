"""Application event sourcing – SnapshotStore port and in-memory store."""

from __future__ import annotations

import abc
import dataclasses
from datetime import datetime

from eventcore.kernel.time.clock import utc_now


@dataclasses.dataclass(frozen=True)
class SnapshotRecord:
    """Derived state of one aggregate as of ``version``."""

    aggregate_id: str
    version: int
    state_bytes: bytes
    taken_at: datetime = dataclasses.field(default_factory=utc_now)


class SnapshotStore(abc.ABC):
    """Port – store and retrieve aggregate state snapshots.

    Snapshots only shorten replay: loading a snapshot at version ``V`` and
    replaying events after ``V`` yields the same state as a full replay.
    """

    @abc.abstractmethod
    async def take(self, aggregate_id: str, version: int, state_bytes: bytes) -> None:
        """Persist a snapshot of *aggregate_id* at *version*."""

    @abc.abstractmethod
    async def latest(self, aggregate_id: str) -> SnapshotRecord | None:
        """Return the most recent snapshot for *aggregate_id*, or ``None``."""


class InMemorySnapshotStore(SnapshotStore):
    """In-memory :class:`SnapshotStore`; keeps only the newest snapshot per id."""

    def __init__(self) -> None:
        self._snapshots: dict[str, SnapshotRecord] = {}

    async def take(self, aggregate_id: str, version: int, state_bytes: bytes) -> None:
        current = self._snapshots.get(aggregate_id)
        if current is not None and current.version >= version:
            return
        self._snapshots[aggregate_id] = SnapshotRecord(
            aggregate_id=aggregate_id,
            version=version,
            state_bytes=state_bytes,
        )

    async def latest(self, aggregate_id: str) -> SnapshotRecord | None:
        return self._snapshots.get(aggregate_id)

    def all_snapshots(self) -> dict[str, SnapshotRecord]:
        return dict(self._snapshots)


__all__ = ["InMemorySnapshotStore", "SnapshotRecord", "SnapshotStore"]
