"""Domain events – one frozen dataclass per event variant."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import ClassVar
from uuid import uuid4

from eventcore.kernel.time.clock import utc_now


@dataclasses.dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for domain events.

    Each subclass is one variant of an aggregate's closed set of events and
    adds its own payload fields.  ``event_type`` is the discriminator written
    to the store; it defaults to the class name and can be pinned with
    ``event_type_name`` so renaming the class does not orphan old streams.

    Example::

        @dataclasses.dataclass(frozen=True, kw_only=True)
        class Deposited(DomainEvent):
            amount: Decimal
    """

    event_type_name: ClassVar[str | None] = None

    event_id: str = dataclasses.field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = dataclasses.field(default_factory=utc_now)

    @classmethod
    def type_name(cls) -> str:
        return cls.event_type_name or cls.__name__

    @property
    def event_type(self) -> str:
        return type(self).type_name()

    @classmethod
    def payload_fields(cls) -> tuple[dataclasses.Field, ...]:
        """Variant-specific fields, i.e. everything except the envelope."""
        return tuple(
            f for f in dataclasses.fields(cls) if f.name not in _ENVELOPE_FIELDS
        )


_ENVELOPE_FIELDS = frozenset({"event_id", "occurred_at"})


__all__ = ["DomainEvent"]
