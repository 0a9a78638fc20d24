"""String-based identifier value objects."""

from __future__ import annotations

import dataclasses
import uuid

from eventcore.kernel.errors.domain import ValidationError


@dataclasses.dataclass(frozen=True, slots=True)
class EntityId:
    """Opaque aggregate identifier.

    The event store only ever sees ``str(entity_id)``; any non-empty string
    is a valid identity.

    Examples::

        eid = EntityId.generate()           # new random id
        eid = EntityId.from_str("acc-123")  # from existing string
        eid = EntityId("acc-123")           # direct construction
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise ValidationError(f"{type(self).__name__} must be a non-empty string")

    def __str__(self) -> str:
        return self.value

    @classmethod
    def generate(cls) -> "EntityId":
        """Return a new random ``EntityId`` (UUID4)."""
        return cls(str(uuid.uuid4()))

    @classmethod
    def from_str(cls, value: str) -> "EntityId":
        return cls(value)


__all__ = ["EntityId"]
