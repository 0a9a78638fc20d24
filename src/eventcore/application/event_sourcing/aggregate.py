"""Application event sourcing – EventSourcedAggregate base class."""

from __future__ import annotations

import abc
from datetime import datetime
from typing import Any, Callable, ClassVar, Iterable, TypeVar

from eventcore.application.event_sourcing.codec import EventCodec
from eventcore.application.event_sourcing.errors import ReplayError, UnknownEventTypeError
from eventcore.application.event_sourcing.stored_event import StoredEvent
from eventcore.kernel.ddd.aggregate import AggregateRoot
from eventcore.kernel.ddd.domain_event import DomainEvent
from eventcore.kernel.time.clock import Clock, SystemClock
from eventcore.kernel.types.ids import EntityId

F = TypeVar("F", bound=Callable[..., None])

_APPLIES_ATTR = "__eventcore_applies__"


def applies(*event_classes: type[DomainEvent]) -> Callable[[F], F]:
    """Mark a method as the state transition for the given event variants."""
    if not event_classes:
        raise TypeError("applies() needs at least one event class")

    def decorator(fn: F) -> F:
        setattr(fn, _APPLIES_ATTR, event_classes)
        return fn

    return decorator


class EventSourcedAggregate(AggregateRoot, abc.ABC):
    """Aggregate root whose state is the fold of its event history.

    Subclasses list their closed set of event variants in ``event_types``
    and give each one a handler decorated with :func:`applies`.  Coverage is
    checked when the subclass is defined: a variant without a handler, or a
    handler for an undeclared variant, is a ``TypeError`` at import time
    rather than an event silently ignored at replay time.

    Domain operations validate against current state first and only then
    call :meth:`_record`, which applies the event and queues it.

    Example::

        class BankAccount(EventSourcedAggregate):
            event_types = (Deposited, Withdrawn)

            def __init__(self, id: EntityId, **kwargs: Any) -> None:
                super().__init__(id, **kwargs)
                self.balance = Decimal("0")

            def deposit(self, amount: Decimal) -> None:
                self._record(Deposited(amount=amount, occurred_at=self._now()))

            @applies(Deposited)
            def _on_deposited(self, event: Deposited) -> None:
                self.balance += event.amount

            @applies(Withdrawn)
            def _on_withdrawn(self, event: Withdrawn) -> None:
                self.balance -= event.amount
    """

    event_types: ClassVar[tuple[type[DomainEvent], ...]] = ()
    _appliers: ClassVar[dict[type[DomainEvent], Callable[[Any, Any], None]]] = {}
    _codec: ClassVar[EventCodec] = EventCodec()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        appliers: dict[type[DomainEvent], Callable[[Any, Any], None]] = {}
        for klass in reversed(cls.__mro__):
            claimed: dict[type[DomainEvent], str] = {}
            for name, attr in vars(klass).items():
                for event_cls in getattr(attr, _APPLIES_ATTR, ()):
                    if event_cls in claimed:
                        raise TypeError(
                            f"{klass.__qualname__}.{claimed[event_cls]} and "
                            f"{klass.__qualname__}.{name} both apply {event_cls.__qualname__}"
                        )
                    claimed[event_cls] = name
                    appliers[event_cls] = attr

        declared = tuple(cls.event_types)
        missing = [e.__qualname__ for e in declared if e not in appliers]
        if missing:
            raise TypeError(f"{cls.__qualname__} has no handler for {', '.join(missing)}")
        undeclared = [e.__qualname__ for e in appliers if e not in declared]
        if undeclared:
            raise TypeError(
                f"{cls.__qualname__} handles {', '.join(undeclared)} "
                "without listing them in event_types"
            )

        cls._appliers = appliers
        cls._codec = EventCodec(declared, owner=cls.__name__)

    def __init__(self, id: EntityId, *, clock: Clock | None = None) -> None:  # noqa: A002
        super().__init__(id)
        self._clock: Clock = clock or SystemClock()

    @classmethod
    def aggregate_type(cls) -> str:
        return cls.__name__

    @classmethod
    def codec(cls) -> EventCodec:
        """Codec covering exactly this aggregate's ``event_types``."""
        return cls._codec

    def _now(self) -> datetime:
        return self._clock.now()

    # ------------------------------------------------------------------
    # Folding
    # ------------------------------------------------------------------

    def apply(self, event: DomainEvent) -> None:
        """Install the state that follows *event*.  Unknown variants are fatal."""
        handler = self._appliers.get(type(event))
        if handler is None:
            event_type = event.event_type if isinstance(event, DomainEvent) else type(event).__name__
            raise UnknownEventTypeError(event_type, self.aggregate_type())
        handler(self, event)

    def _record(self, event: DomainEvent) -> None:
        """Apply a freshly decided event and queue it for persistence."""
        self.apply(event)
        self._raise_event(event)
        self._check_invariants()

    def load_from_history(self, events: Iterable[StoredEvent]) -> None:
        """Replay persisted *events* on top of the current state.

        Each event must continue the stream exactly: same aggregate id and
        ``sequence_number == version + 1``.  Replayed events are never queued
        as pending.
        """
        if self._pending:
            raise ReplayError(
                f"Cannot replay history into {self.aggregate_type()} '{self.id}' "
                f"while {len(self._pending)} event(s) are pending"
            )
        aggregate_id = str(self.id)
        for stored in events:
            if stored.aggregate_id != aggregate_id:
                raise ReplayError(
                    f"Event {stored.event_id} belongs to '{stored.aggregate_id}', "
                    f"not '{aggregate_id}'"
                )
            if stored.sequence_number != self._version + 1:
                raise ReplayError(
                    f"Out-of-order history for '{aggregate_id}': expected sequence "
                    f"{self._version + 1}, got {stored.sequence_number}"
                )
            self.apply(self._codec.decode(stored))
            self._version = stored.sequence_number
        self._check_invariants()

    def _check_invariants(self) -> None:
        """Override to assert state invariants after every change."""

    # ------------------------------------------------------------------
    # Snapshots (optional)
    # ------------------------------------------------------------------

    def snapshot_state(self) -> dict[str, Any]:
        """Return the derived state as a JSON-compatible dict."""
        raise NotImplementedError(f"{self.aggregate_type()} does not support snapshots")

    def _restore_state(self, state: dict[str, Any]) -> None:
        raise NotImplementedError(f"{self.aggregate_type()} does not support snapshots")

    @classmethod
    def supports_snapshots(cls) -> bool:
        return (
            cls.snapshot_state is not EventSourcedAggregate.snapshot_state
            and cls._restore_state is not EventSourcedAggregate._restore_state
        )

    def restore_snapshot(self, state: dict[str, Any], version: int) -> None:
        """Seed a fresh aggregate with snapshotted *state* taken at *version*."""
        if self._version or self._pending:
            raise ReplayError("Snapshots can only be restored into a zero-state aggregate")
        self._restore_state(state)
        self._version = version


__all__ = ["EventSourcedAggregate", "applies"]
