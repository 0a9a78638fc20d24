"""Unit tests for EventSourcedRepository."""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from typing import Any, Sequence

import pytest

from eventcore.application.event_sourcing import (
    ConcurrencyConflictError,
    EventStore,
    InMemoryEventStore,
    StoredEvent,
    UncommittedEvent,
)
from eventcore.kernel.ddd import DomainEvent
from eventcore.kernel.errors import StorageUnavailableError
from eventcore.kernel.types import EntityId
from eventcore.observability import CorrelationContext, RequestContext
from eventcore.samples.bank_account import BankAccount, BankAccountRepository


class UnavailableStore(EventStore):
    """Store whose medium is gone."""

    async def append(
        self, aggregate_id: str, expected_version: int, events: Sequence[UncommittedEvent]
    ) -> int:
        raise StorageUnavailableError("memory", "disk on fire")

    async def load_stream_from(self, aggregate_id: str, after_version: int) -> list[StoredEvent]:
        raise StorageUnavailableError("memory", "disk on fire")

    async def stream_version(self, aggregate_id: str) -> int:
        raise StorageUnavailableError("memory", "disk on fire")


def _repo(store: EventStore | None = None, **kwargs: Any) -> BankAccountRepository:
    return BankAccountRepository(store or InMemoryEventStore(), **kwargs)


class TestLoad:
    def test_unknown_id_yields_zero_state(self) -> None:
        account = asyncio.run(_repo().load(EntityId("nobody")))
        assert account.id == EntityId("nobody")
        assert account.version == 0
        assert account.balance == Decimal("0")

    def test_accepts_plain_string_id(self) -> None:
        account = asyncio.run(_repo().load("acc-1"))
        assert account.id == EntityId("acc-1")

    def test_storage_failure_propagates(self) -> None:
        with pytest.raises(StorageUnavailableError):
            asyncio.run(_repo(UnavailableStore()).load("acc-1"))


class TestSave:
    def test_save_then_load_round_trip(self) -> None:
        repo = _repo()
        account = BankAccount(EntityId("acc-1"))
        account.deposit(Decimal("100"))
        account.withdraw(Decimal("30"))

        async def run() -> tuple[int, BankAccount]:
            version = await repo.save(account)
            return version, await repo.load(account.id)

        version, loaded = asyncio.run(run())
        assert version == 2
        assert account.pending_events() == []
        assert account.version == 2
        assert loaded.balance == Decimal("70")
        assert loaded.version == 2

    def test_stored_events_carry_envelope(self) -> None:
        store = InMemoryEventStore()
        account = BankAccount(EntityId("acc-1"))
        account.deposit(Decimal("5"))
        pending = account.pending_events()[0]
        asyncio.run(_repo(store).save(account))

        stored = store.all_events("acc-1")[0]
        assert stored.event_id == pending.event_id
        assert stored.occurred_at == pending.occurred_at
        assert stored.event_type == "Deposit"
        assert stored.aggregate_type == "BankAccount"
        assert json.loads(stored.payload) == {"amount": "5"}

    def test_save_without_pending_is_noop(self) -> None:
        store = InMemoryEventStore()
        account = BankAccount(EntityId("acc-1"))
        assert asyncio.run(_repo(store).save(account)) == 0
        assert store.all_events() == []

    def test_second_save_appends_after_first(self) -> None:
        repo = _repo()

        async def run() -> BankAccount:
            account = BankAccount(EntityId("acc-1"))
            account.deposit(Decimal("10"))
            await repo.save(account)
            account.deposit(Decimal("20"))
            await repo.save(account)
            return await repo.load("acc-1")

        loaded = asyncio.run(run())
        assert loaded.version == 2
        assert loaded.balance == Decimal("30")

    def test_conflict_leaves_aggregate_untouched(self) -> None:
        store = InMemoryEventStore()
        repo = _repo(store)

        async def run() -> tuple[BankAccount, BankAccount]:
            first = await repo.load("acc-1")
            second = await repo.load("acc-1")
            first.deposit(Decimal("10"))
            second.deposit(Decimal("99"))
            await repo.save(first)
            with pytest.raises(ConcurrencyConflictError) as exc_info:
                await repo.save(second)
            assert exc_info.value.expected == 0
            assert exc_info.value.actual == 1
            return second, await repo.load("acc-1")

        loser, reloaded = asyncio.run(run())
        assert len(loser.pending_events()) == 1
        assert loser.version == 1
        assert loser.persisted_version == 0
        assert reloaded.balance == Decimal("10")
        assert len(store.all_events("acc-1")) == 1

    def test_reload_and_retry_after_conflict(self) -> None:
        repo = _repo()

        async def run() -> BankAccount:
            stale = await repo.load("acc-1")
            fresh = await repo.load("acc-1")
            fresh.deposit(Decimal("10"))
            await repo.save(fresh)
            stale.deposit(Decimal("5"))
            with pytest.raises(ConcurrencyConflictError):
                await repo.save(stale)

            retried = await repo.load("acc-1")
            retried.deposit(Decimal("5"))
            await repo.save(retried)
            return await repo.load("acc-1")

        final = asyncio.run(run())
        assert final.balance == Decimal("15")
        assert final.version == 2

    def test_storage_failure_keeps_pending(self) -> None:
        account = BankAccount(EntityId("acc-1"))
        account.deposit(Decimal("1"))
        with pytest.raises(StorageUnavailableError):
            asyncio.run(_repo(UnavailableStore()).save(account))
        assert len(account.pending_events()) == 1


class TestMetadata:
    def test_correlation_context_stamped_on_events(self) -> None:
        store = InMemoryEventStore()
        account = BankAccount(EntityId("acc-1"))
        account.deposit(Decimal("1"))

        async def run() -> None:
            with CorrelationContext.scope(RequestContext("corr-1", user_id="u-1")):
                await _repo(store).save(account)

        asyncio.run(run())
        assert store.all_events("acc-1")[0].metadata == {
            "correlation_id": "corr-1",
            "user_id": "u-1",
        }

    def test_no_context_no_metadata(self) -> None:
        store = InMemoryEventStore()
        account = BankAccount(EntityId("acc-1"))
        account.deposit(Decimal("1"))
        asyncio.run(_repo(store).save(account))
        assert store.all_events("acc-1")[0].metadata == {}

    def test_custom_metadata_factory(self) -> None:
        store = InMemoryEventStore()
        account = BankAccount(EntityId("acc-1"))
        account.deposit(Decimal("1"))
        account.withdraw(Decimal("1"))

        def factory(event: DomainEvent) -> dict[str, Any]:
            return {"schema": 1, "kind": event.event_type}

        asyncio.run(_repo(store, metadata_factory=factory).save(account))
        assert [e.metadata["kind"] for e in store.all_events("acc-1")] == [
            "Deposit",
            "Withdrawal",
        ]
