"""AggregateRoot – tracks pending domain events and the applied version."""

from __future__ import annotations

from eventcore.kernel.ddd.domain_event import DomainEvent
from eventcore.kernel.ddd.entity import Entity
from eventcore.kernel.types.ids import EntityId


class AggregateRoot(Entity):
    """Aggregate root.

    ``version`` counts every event folded into the aggregate, including the
    ones still pending.  ``persisted_version`` is the version the store is
    expected to hold, i.e. ``version`` minus the pending events.
    """

    _version: int
    _pending: list[DomainEvent]

    def __init__(self, id: EntityId) -> None:  # noqa: A002
        super().__init__(id)
        self._version = 0
        self._pending = []

    def _raise_event(self, event: DomainEvent) -> None:
        """Queue a domain event for persistence and bump the version."""
        self._pending.append(event)
        self._version += 1

    def pending_events(self) -> list[DomainEvent]:
        """Events produced since the last load/save, oldest first."""
        return list(self._pending)

    def has_pending_events(self) -> bool:
        return bool(self._pending)

    def mark_persisted(self) -> None:
        """Forget pending events once the store has accepted them."""
        self._pending.clear()

    @property
    def version(self) -> int:
        return self._version

    @property
    def persisted_version(self) -> int:
        return self._version - len(self._pending)


__all__ = ["AggregateRoot"]
