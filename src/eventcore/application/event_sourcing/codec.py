"""Application event sourcing – EventCodec.

Turns :class:`~eventcore.kernel.ddd.DomainEvent` variants into the JSON
payload bytes kept in a :class:`StoredEvent` and back.  Encoding is
canonical (sorted keys, no whitespace, ``Decimal`` as string) so the same
event always produces the same bytes and replays to the same state.

Payload fields may be typed as:

* JSON scalars (``str``, ``int``, ``float``, ``bool``) and ``None``;
* ``Decimal``, ``datetime``, :class:`~eventcore.kernel.types.EntityId` and
  ``Enum`` members, written as their string or value form;
* ``list[X]``, ``dict[K, V]``, ``tuple[X, ...]`` and fixed ``tuple[X, Y]``
  of any supported type, written as JSON arrays and objects;
* nested dataclasses of supported fields, written as JSON objects;
* ``X | None`` of any of the above.

Other unions decode to the raw JSON value.  Sets and arbitrary objects are
rejected at encode time.
"""

from __future__ import annotations

import dataclasses
import enum
import functools
import json
import types
import typing
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from eventcore.application.event_sourcing.errors import UnknownEventTypeError
from eventcore.application.event_sourcing.stored_event import StoredEvent
from eventcore.kernel.ddd.domain_event import DomainEvent
from eventcore.kernel.errors.domain import ValidationError
from eventcore.kernel.errors.infrastructure import SerializationError
from eventcore.kernel.types.ids import EntityId


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, EntityId):
        return value.value
    if isinstance(value, enum.Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value) if f.init}
    raise TypeError(f"{type(value).__name__} is not JSON serialisable")


def _coerce(value: Any, hint: Any) -> Any:
    if value is None:
        return None
    origin = typing.get_origin(hint)
    args = typing.get_args(hint)
    if origin is typing.Union or origin is types.UnionType:
        candidates = [a for a in args if a is not type(None)]
        return _coerce(value, candidates[0]) if len(candidates) == 1 else value
    if hint is tuple or origin is tuple:
        items = _shaped(value, list, hint)
        if not args:
            return tuple(items)
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_coerce(item, args[0]) for item in items)
        if len(items) != len(args):
            raise ValueError(f"{hint} needs {len(args)} items, got {len(items)}")
        return tuple(_coerce(item, arg) for item, arg in zip(items, args))
    if hint is list or origin is list:
        items = _shaped(value, list, hint)
        return [_coerce(item, args[0]) for item in items] if args else list(items)
    if hint is dict or origin is dict:
        mapping = _shaped(value, dict, hint)
        if not args:
            return dict(mapping)
        key_hint, value_hint = args
        return {_coerce(k, key_hint): _coerce(v, value_hint) for k, v in mapping.items()}
    if isinstance(hint, type) and dataclasses.is_dataclass(hint):
        mapping = _shaped(value, dict, hint)
        hints = _field_hints(hint)
        return hint(**{k: _coerce(v, hints.get(k)) for k, v in mapping.items()})
    if hint is Decimal:
        return Decimal(value)
    if hint is datetime:
        return datetime.fromisoformat(value)
    if hint is EntityId:
        return EntityId(value)
    if isinstance(hint, type) and issubclass(hint, enum.Enum):
        return hint(value)
    return value


def _shaped(value: Any, kind: type, hint: Any) -> Any:
    if not isinstance(value, kind):
        expected = "array" if kind is list else "object"
        raise TypeError(f"{hint} needs a JSON {expected}, got {type(value).__name__}")
    return value


@functools.lru_cache(maxsize=None)
def _field_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except NameError:
        # Annotations referencing names local to a function cannot be
        # resolved; payload values are then passed through unchanged.
        return {f.name: f.type for f in dataclasses.fields(cls)}


class EventCodec:
    """Registry of event variants plus their JSON wire form.

    Example::

        codec = EventCodec([Deposited, Withdrawn], owner="BankAccount")
        raw = codec.encode(Deposited(amount=Decimal("10")))
        event = codec.decode(stored_event)
    """

    def __init__(
        self,
        event_classes: Iterable[type[DomainEvent]] = (),
        *,
        owner: str = "aggregate",
    ) -> None:
        self._owner = owner
        self._by_name: dict[str, type[DomainEvent]] = {}
        for event_cls in event_classes:
            self.register(event_cls)

    def register(self, event_cls: type[DomainEvent]) -> None:
        """Add *event_cls*; discriminators must be unique within a codec."""
        name = event_cls.type_name()
        existing = self._by_name.get(name)
        if existing is not None and existing is not event_cls:
            raise TypeError(
                f"Event type '{name}' is claimed by both "
                f"{existing.__qualname__} and {event_cls.__qualname__}"
            )
        self._by_name[name] = event_cls

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._by_name

    def event_types(self) -> frozenset[str]:
        return frozenset(self._by_name)

    def class_for(self, event_type: str) -> type[DomainEvent]:
        try:
            return self._by_name[event_type]
        except KeyError:
            raise UnknownEventTypeError(event_type, self._owner) from None

    def encode(self, event: DomainEvent) -> bytes:
        """Serialise the variant fields of *event* to canonical JSON bytes."""
        if event.event_type not in self._by_name:
            raise UnknownEventTypeError(event.event_type, self._owner)
        data = {f.name: getattr(event, f.name) for f in event.payload_fields()}
        try:
            return json.dumps(
                data,
                default=_json_default,
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
            ).encode()
        except (TypeError, ValueError) as exc:
            raise SerializationError(
                f"Cannot encode {event.event_type}: {exc}",
                payload_type=event.event_type,
                cause=exc,
            ) from exc

    def decode(self, stored: StoredEvent) -> DomainEvent:
        """Rebuild the domain event held by *stored*."""
        event_cls = self.class_for(stored.event_type)
        try:
            data = json.loads(stored.payload)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SerializationError(
                f"Payload of {stored.event_type} #{stored.sequence_number} is not valid JSON",
                payload_type=stored.event_type,
                cause=exc,
            ) from exc
        if not isinstance(data, dict):
            raise SerializationError(
                f"Payload of {stored.event_type} must be a JSON object",
                payload_type=stored.event_type,
            )

        hints = _field_hints(event_cls)
        try:
            kwargs = {key: _coerce(value, hints.get(key)) for key, value in data.items()}
            return event_cls(
                event_id=stored.event_id,
                occurred_at=stored.occurred_at,
                **kwargs,
            )
        except (TypeError, ValueError, InvalidOperation, ValidationError) as exc:
            raise SerializationError(
                f"Payload does not match {event_cls.__qualname__}: {exc}",
                payload_type=stored.event_type,
                cause=exc,
            ) from exc


__all__ = ["EventCodec"]
