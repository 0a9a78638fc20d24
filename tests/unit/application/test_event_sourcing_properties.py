"""Property-based tests for replay and append laws."""

from __future__ import annotations

import asyncio
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from eventcore.application.event_sourcing import InMemoryEventStore, UncommittedEvent
from eventcore.kernel.types import EntityId
from eventcore.samples.bank_account import (
    BankAccount,
    BankAccountRepository,
    InsufficientFundsError,
)

amounts = st.decimals(
    min_value=Decimal("0.01"), max_value=Decimal("10000"), places=2, allow_nan=False
)
operations = st.lists(st.tuples(st.sampled_from(["deposit", "withdraw"]), amounts), max_size=30)
batches = st.lists(st.integers(min_value=1, max_value=5), min_size=1, max_size=10)


def _run_operations(account: BankAccount, ops: list[tuple[str, Decimal]]) -> None:
    for name, amount in ops:
        try:
            getattr(account, name)(amount)
        except InsufficientFundsError:
            pass


def _event(aggregate_id: str) -> UncommittedEvent:
    return UncommittedEvent(
        aggregate_id=aggregate_id, aggregate_type="T", event_type="E", payload=b"{}"
    )


class TestReplayLaws:
    @settings(max_examples=50, deadline=None)
    @given(ops=operations)
    def test_round_trip_equals_in_memory_state(self, ops: list[tuple[str, Decimal]]) -> None:
        repo = BankAccountRepository(InMemoryEventStore())
        account = BankAccount(EntityId("acc-1"))
        _run_operations(account, ops)

        async def run() -> BankAccount:
            await repo.save(account)
            return await repo.load("acc-1")

        loaded = asyncio.run(run())
        assert loaded.balance == account.balance
        assert loaded.version == account.version
        assert loaded.balance >= 0

    @settings(max_examples=50, deadline=None)
    @given(ops=operations)
    def test_replay_is_deterministic(self, ops: list[tuple[str, Decimal]]) -> None:
        store = InMemoryEventStore()
        account = BankAccount(EntityId("acc-1"))
        _run_operations(account, ops)
        repo = BankAccountRepository(store)

        async def run() -> tuple[BankAccount, BankAccount]:
            await repo.save(account)
            return await repo.load("acc-1"), await repo.load("acc-1")

        first, second = asyncio.run(run())
        assert (first.balance, first.version) == (second.balance, second.version)

    @settings(max_examples=50, deadline=None)
    @given(ops=operations)
    def test_balance_is_deposits_minus_withdrawals(self, ops: list[tuple[str, Decimal]]) -> None:
        account = BankAccount(EntityId("acc-1"))
        _run_operations(account, ops)
        deposits = sum(
            (e.amount for e in account.pending_events() if e.event_type == "Deposit"),
            Decimal("0"),
        )
        withdrawals = sum(
            (e.amount for e in account.pending_events() if e.event_type == "Withdrawal"),
            Decimal("0"),
        )
        assert account.balance == deposits - withdrawals


class TestAppendLaws:
    @settings(max_examples=50, deadline=None)
    @given(sizes=batches)
    def test_sequence_numbers_are_gap_free(self, sizes: list[int]) -> None:
        store = InMemoryEventStore()

        async def run() -> None:
            version = 0
            for size in sizes:
                version = await store.append("a", version, [_event("a") for _ in range(size)])

        asyncio.run(run())
        assert [e.sequence_number for e in store.all_events("a")] == list(
            range(1, sum(sizes) + 1)
        )

    @settings(max_examples=50, deadline=None)
    @given(plan=st.lists(st.sampled_from(["a", "b", "c"]), min_size=1, max_size=30))
    def test_streams_never_intersect(self, plan: list[str]) -> None:
        store = InMemoryEventStore()

        async def run() -> None:
            for aggregate_id in plan:
                version = await store.stream_version(aggregate_id)
                await store.append(aggregate_id, version, [_event(aggregate_id)])

        asyncio.run(run())
        for aggregate_id in ("a", "b", "c"):
            stream = store.all_events(aggregate_id)
            assert len(stream) == plan.count(aggregate_id)
            assert all(e.aggregate_id == aggregate_id for e in stream)
            assert [e.sequence_number for e in stream] == list(range(1, len(stream) + 1))

    @settings(max_examples=30, deadline=None)
    @given(sizes=batches)
    def test_appended_events_are_never_rewritten(self, sizes: list[int]) -> None:
        store = InMemoryEventStore()

        async def run() -> None:
            version = 0
            snapshot: list[object] = []
            for size in sizes:
                version = await store.append("a", version, [_event("a") for _ in range(size)])
                stream = await store.load_stream("a")
                assert stream[: len(snapshot)] == snapshot
                snapshot = list(stream)

        asyncio.run(run())
