"""Sample domain – an event-sourced bank account.

Run ``python -m eventcore.samples.bank_account`` to open an account, deposit
100, withdraw 30, persist the events and rebuild the account from its
stream.  ``EVENTCORE_*`` environment variables select the backend.
"""

from __future__ import annotations

import asyncio
import dataclasses
from decimal import Decimal, InvalidOperation
from typing import Any

from eventcore.application.event_sourcing import (
    EventSourcedAggregate,
    EventSourcedRepository,
    applies,
)
from eventcore.bootstrap import (
    configure_logging,
    create_event_store,
    create_snapshot_store,
    load_settings,
)
from eventcore.kernel.ddd import DomainEvent
from eventcore.kernel.errors import ValidationError
from eventcore.kernel.time import Clock
from eventcore.kernel.types import EntityId
from eventcore.observability import CorrelationContext, get_logger

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, kw_only=True)
class Deposited(DomainEvent):
    event_type_name = "Deposit"

    amount: Decimal


@dataclasses.dataclass(frozen=True, kw_only=True)
class Withdrawn(DomainEvent):
    event_type_name = "Withdrawal"

    amount: Decimal


class InsufficientFundsError(ValidationError):
    """A withdrawal asked for more than the current balance."""

    default_code = "insufficient_funds"

    def __init__(self, balance: Decimal, requested: Decimal) -> None:
        super().__init__(
            f"Cannot withdraw {requested}: balance is {balance}",
            detail={"balance": str(balance), "requested": str(requested)},
        )
        self.balance = balance
        self.requested = requested


def _positive_amount(amount: Decimal | int | str) -> Decimal:
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValidationError(f"Amount {amount!r} is not a number", cause=exc) from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"Amount must be a positive number, got {amount!r}")
    return value


class BankAccount(EventSourcedAggregate):
    """Balance is the sum of deposits minus the sum of withdrawals."""

    event_types = (Deposited, Withdrawn)

    def __init__(self, id: EntityId, *, clock: Clock | None = None) -> None:  # noqa: A002
        super().__init__(id, clock=clock)
        self.balance = Decimal("0")

    def deposit(self, amount: Decimal | int | str) -> None:
        value = _positive_amount(amount)
        self._record(Deposited(amount=value, occurred_at=self._now()))

    def withdraw(self, amount: Decimal | int | str) -> None:
        value = _positive_amount(amount)
        if value > self.balance:
            raise InsufficientFundsError(self.balance, value)
        self._record(Withdrawn(amount=value, occurred_at=self._now()))

    @applies(Deposited)
    def _on_deposited(self, event: Deposited) -> None:
        self.balance += event.amount

    @applies(Withdrawn)
    def _on_withdrawn(self, event: Withdrawn) -> None:
        self.balance -= event.amount

    def snapshot_state(self) -> dict[str, Any]:
        return {"balance": str(self.balance)}

    def _restore_state(self, state: dict[str, Any]) -> None:
        self.balance = Decimal(state["balance"])


class BankAccountRepository(EventSourcedRepository[BankAccount]):
    def _aggregate_class(self) -> type[BankAccount]:
        return BankAccount


async def main() -> None:
    settings = load_settings()
    configure_logging(settings)
    store = await create_event_store(settings)
    try:
        repo = BankAccountRepository(
            store,
            snapshot_store=create_snapshot_store(settings),
            snapshot_every=settings.snapshot_every,
        )
        account = BankAccount(EntityId.generate())
        with CorrelationContext.scope():
            account.deposit(Decimal("100"))
            account.withdraw(Decimal("30"))
            await repo.save(account)

        restored = await repo.load(account.id)
        logger.info(
            "account.restored",
            account_id=str(restored.id),
            balance=str(restored.balance),
            version=restored.version,
        )
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
