"""Unit tests for snapshot stores and snapshot-aware repositories."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any

import pytest

from eventcore.application.event_sourcing import (
    EventSourcedAggregate,
    EventSourcedRepository,
    InMemoryEventStore,
    InMemorySnapshotStore,
    SnapshotRecord,
    SnapshotStore,
    applies,
)
from eventcore.kernel.errors import (
    ApplicationError,
    SerializationError,
    StorageUnavailableError,
)
from eventcore.kernel.types import EntityId
from eventcore.samples.bank_account import BankAccount, BankAccountRepository, Deposited


class BrokenSnapshotStore(SnapshotStore):
    async def take(self, aggregate_id: str, version: int, state_bytes: bytes) -> None:
        raise StorageUnavailableError("snapshots")

    async def latest(self, aggregate_id: str) -> SnapshotRecord | None:
        return None


class UntouchableSnapshotStore(SnapshotStore):
    async def take(self, aggregate_id: str, version: int, state_bytes: bytes) -> None:
        raise AssertionError("take called")

    async def latest(self, aggregate_id: str) -> SnapshotRecord | None:
        raise AssertionError("latest called")


class TestInMemorySnapshotStore:
    def test_latest_none_when_empty(self) -> None:
        assert asyncio.run(InMemorySnapshotStore().latest("a")) is None

    def test_take_and_latest(self) -> None:
        store = InMemorySnapshotStore()

        async def run() -> SnapshotRecord | None:
            await store.take("a", 3, b'{"x":1}')
            return await store.latest("a")

        record = asyncio.run(run())
        assert record is not None
        assert (record.aggregate_id, record.version, record.state_bytes) == ("a", 3, b'{"x":1}')

    def test_older_snapshot_never_replaces_newer(self) -> None:
        store = InMemorySnapshotStore()

        async def run() -> SnapshotRecord | None:
            await store.take("a", 5, b"new")
            await store.take("a", 2, b"old")
            return await store.latest("a")

        record = asyncio.run(run())
        assert record is not None
        assert record.version == 5
        assert len(store.all_snapshots()) == 1


class TestRepositorySnapshots:
    def _deposit_and_save(self, repo: BankAccountRepository, times: int) -> None:
        async def run() -> None:
            for _ in range(times):
                account = await repo.load("acc-1")
                account.deposit(Decimal("1"))
                await repo.save(account)

        asyncio.run(run())

    def test_snapshot_taken_when_cadence_crossed(self) -> None:
        snapshots = InMemorySnapshotStore()
        repo = BankAccountRepository(
            InMemoryEventStore(), snapshot_store=snapshots, snapshot_every=3
        )
        self._deposit_and_save(repo, 2)
        assert asyncio.run(snapshots.latest("acc-1")) is None

        self._deposit_and_save(repo, 1)
        record = asyncio.run(snapshots.latest("acc-1"))
        assert record is not None
        assert record.version == 3
        assert record.state_bytes == b'{"balance":"3"}'

    def test_batch_crossing_cadence_snapshots_final_version(self) -> None:
        snapshots = InMemorySnapshotStore()
        repo = BankAccountRepository(
            InMemoryEventStore(), snapshot_store=snapshots, snapshot_every=2
        )
        account = BankAccount(EntityId("acc-1"))
        for _ in range(5):
            account.deposit(Decimal("2"))
        asyncio.run(repo.save(account))
        record = asyncio.run(snapshots.latest("acc-1"))
        assert record is not None
        assert record.version == 5

    def test_load_from_snapshot_matches_full_replay(self) -> None:
        events = InMemoryEventStore()
        snapshots = InMemorySnapshotStore()
        snapshotting = BankAccountRepository(events, snapshot_store=snapshots, snapshot_every=4)
        self._deposit_and_save(snapshotting, 10)

        plain = BankAccountRepository(events)
        via_snapshot = asyncio.run(snapshotting.load("acc-1"))
        full = asyncio.run(plain.load("acc-1"))
        assert via_snapshot.balance == full.balance == Decimal("10")
        assert via_snapshot.version == full.version == 10

    def test_snapshot_failure_does_not_fail_save(self) -> None:
        repo = BankAccountRepository(
            InMemoryEventStore(), snapshot_store=BrokenSnapshotStore(), snapshot_every=1
        )
        account = BankAccount(EntityId("acc-1"))
        account.deposit(Decimal("1"))
        assert asyncio.run(repo.save(account)) == 1

    def test_corrupt_snapshot_raises(self) -> None:
        snapshots = InMemorySnapshotStore()
        asyncio.run(snapshots.take("acc-1", 1, b"\xff not json"))
        repo = BankAccountRepository(
            InMemoryEventStore(), snapshot_store=snapshots, snapshot_every=1
        )
        with pytest.raises(SerializationError):
            asyncio.run(repo.load("acc-1"))

    def test_snapshot_cadence_zero_disables(self) -> None:
        snapshots = InMemorySnapshotStore()
        repo = BankAccountRepository(InMemoryEventStore(), snapshot_store=snapshots)
        assert repo.snapshots_enabled is False
        self._deposit_and_save(repo, 3)
        assert snapshots.all_snapshots() == {}

    def test_disabled_cadence_never_touches_snapshot_store(self) -> None:
        repo = BankAccountRepository(
            InMemoryEventStore(), snapshot_store=UntouchableSnapshotStore(), snapshot_every=0
        )
        self._deposit_and_save(repo, 3)
        assert asyncio.run(repo.load("acc-1")).balance == Decimal("3")

    def test_negative_cadence_rejected(self) -> None:
        with pytest.raises(ApplicationError):
            BankAccountRepository(InMemoryEventStore(), snapshot_every=-1)

    def test_aggregate_without_hooks_rejected(self) -> None:
        class Ledger(EventSourcedAggregate):
            event_types = (Deposited,)

            @applies(Deposited)
            def _on_deposited(self, event: Deposited) -> None: ...

        class LedgerRepository(EventSourcedRepository[Ledger]):
            def _aggregate_class(self) -> type[Ledger]:
                return Ledger

        with pytest.raises(ApplicationError):
            LedgerRepository(
                InMemoryEventStore(), snapshot_store=InMemorySnapshotStore(), snapshot_every=2
            )

        repo: Any = LedgerRepository(InMemoryEventStore())
        assert repo.snapshots_enabled is False
