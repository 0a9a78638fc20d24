"""Application event sourcing – error types."""

from __future__ import annotations

from eventcore.kernel.errors.domain import ConflictError, DomainError, InvariantViolationError


class ConcurrencyConflictError(ConflictError):
    """The stream moved on since the caller last read it.

    Recoverable: reload the aggregate, re-run the command, save again.
    """

    default_code = "concurrency_conflict"

    def __init__(self, aggregate_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Concurrency conflict on aggregate '{aggregate_id}': "
            f"expected version {expected}, found {actual}",
            detail={"aggregate_id": aggregate_id, "expected": expected, "actual": actual},
        )
        self.aggregate_id = aggregate_id
        self.expected = expected
        self.actual = actual


class UnknownEventTypeError(DomainError):
    """An event variant has no handler on the aggregate replaying it.

    Signals a schema mismatch between writer and reader; never swallowed.
    """

    default_code = "unknown_event_type"

    def __init__(self, event_type: str, aggregate_type: str) -> None:
        super().__init__(
            f"{aggregate_type} cannot apply event type '{event_type}'",
            detail={"event_type": event_type, "aggregate_type": aggregate_type},
        )
        self.event_type = event_type
        self.aggregate_type = aggregate_type


class ReplayError(InvariantViolationError):
    """A history handed to an aggregate is not a valid continuation of it."""

    default_code = "replay_error"


__all__ = ["ConcurrencyConflictError", "ReplayError", "UnknownEventTypeError"]
