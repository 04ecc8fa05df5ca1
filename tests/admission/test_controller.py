import threading
from contextlib import contextmanager

import pytest
from django.db import IntegrityError

from admission.controller import (
    AdmissionDecision,
    CapacityAdmissionController,
    ConcurrencyConflict,
    JoinRequest,
    classify_rank,
)
from admission.models import AdmissionStatus, RejectionReason
from admission.signals import tier_unlocked
from pricing import PositionPricingCalculator, Tier, TierTable

TABLE = TierTable([
    Tier(1, 20),
    Tier(21, 40, discount_percent=5),
    Tier(41, 60, discount_percent=10),
    Tier(61, 100, discount_percent=18),
])


class MemoryPool:
    def __init__(self, total_capacity=100, waiting_list_capacity=20, is_open=True):
        self.total_capacity = total_capacity
        self.waiting_list_capacity = waiting_list_capacity
        self.base_price = 4500
        self.is_open = is_open

    def tier_table(self):
        return TABLE

    def is_registration_open(self, now):
        return self.is_open

    def __str__(self):
        return "memory-pool"


class MemoryStore:
    """Storage double: a locked counter rolled back when the unit of work fails."""

    conflict_errors = (IntegrityError,)

    def __init__(self, failures=0, locked_pool=None):
        self.mutex = threading.Lock()
        self.counter = 0
        self.saved = []
        self.failures = failures
        self.locked_pool = locked_pool
        self.refreshed = 0

    @contextmanager
    def atomic(self):
        with self.mutex:
            snapshot = self.counter
            try:
                yield
            except Exception:
                self.counter = snapshot
                raise

    def lock(self, pool):
        return self.locked_pool or pool

    def next_rank(self, pool):
        rank = self.counter
        self.counter += 1
        return rank

    def save(self, pool, join_request, decision: AdmissionDecision):
        if self.failures:
            self.failures -= 1
            raise IntegrityError("duplicate position")
        self.saved.append((join_request, decision))
        return decision

    def on_commit(self, callback):
        callback()

    def refresh(self, pool):
        self.refreshed += 1


def make_controller(store):
    return CapacityAdmissionController(store=store, pricing=PositionPricingCalculator())


class TestClassifyRank:
    @pytest.mark.parametrize(
        "rank, expected",
        [
            (0, AdmissionStatus.CONFIRMED),
            (99, AdmissionStatus.CONFIRMED),
            (100, AdmissionStatus.WAITING_LIST),
            (119, AdmissionStatus.WAITING_LIST),
            (120, AdmissionStatus.REJECTED),
        ],
    )
    def test_capacity_then_waiting_list(self, rank, expected):
        assert classify_rank(rank, 100, 20) == expected

    def test_no_waiting_list(self):
        assert classify_rank(3, 3, 0) == AdmissionStatus.REJECTED


class TestAdmit:
    def test_first_join_is_confirmed_at_first_buyer_price(self):
        result = make_controller(MemoryStore()).admit(MemoryPool(), JoinRequest(full_name="Awa"))
        assert result.status == AdmissionStatus.CONFIRMED
        assert result.position == 1
        assert result.tier_index == 0
        assert result.price == 4388
        assert result.is_admitted

    def test_closed_pool_rejects_without_consuming_a_position(self):
        store = MemoryStore()
        result = make_controller(store).admit(MemoryPool(is_open=False), JoinRequest())
        assert result.status == AdmissionStatus.REJECTED
        assert result.reason == RejectionReason.STAGE_CLOSED
        assert store.counter == 0

    def test_pool_closed_while_waiting_for_the_lock(self):
        store = MemoryStore(locked_pool=MemoryPool(is_open=False))
        result = make_controller(store).admit(MemoryPool(is_open=True), JoinRequest())
        assert result.status == AdmissionStatus.REJECTED
        assert result.reason == RejectionReason.STAGE_CLOSED
        assert store.counter == 0
        assert store.saved == []

    def test_decisions_use_the_locked_pool(self):
        store = MemoryStore(locked_pool=MemoryPool(total_capacity=0, waiting_list_capacity=1))
        result = make_controller(store).admit(MemoryPool(total_capacity=100), JoinRequest())
        assert result.status == AdmissionStatus.WAITING_LIST
        assert result.waiting_list_position == 1
        assert store.refreshed == 1

    def test_capacity_then_waiting_list_then_rejection(self):
        store = MemoryStore()
        controller = make_controller(store)
        pool = MemoryPool(total_capacity=2, waiting_list_capacity=1)
        results = [controller.admit(pool, JoinRequest()) for _ in range(4)]
        assert [r.status for r in results] == [
            AdmissionStatus.CONFIRMED,
            AdmissionStatus.CONFIRMED,
            AdmissionStatus.WAITING_LIST,
            AdmissionStatus.REJECTED,
        ]
        assert results[2].position == 3
        assert results[2].waiting_list_position == 1
        assert results[2].price is None
        assert results[3].reason == RejectionReason.CAPACITY_EXCEEDED
        assert results[3].position is None
        assert len(store.saved) == 3

    def test_conflict_is_retried_once(self):
        store = MemoryStore(failures=1)
        result = make_controller(store).admit(MemoryPool(), JoinRequest())
        assert result.status == AdmissionStatus.CONFIRMED
        assert result.position == 1

    def test_second_conflict_surfaces(self):
        store = MemoryStore(failures=2)
        with pytest.raises(ConcurrencyConflict):
            make_controller(store).admit(MemoryPool(), JoinRequest())
        assert store.saved == []
        assert store.counter == 0
        assert store.refreshed == 0

    def test_tier_unlock_is_announced(self):
        received = []

        def receiver(sender, **kwargs):
            received.append(kwargs)

        tier_unlocked.connect(receiver, sender=MemoryPool, weak=False)
        try:
            controller = make_controller(MemoryStore())
            pool = MemoryPool()
            results = [controller.admit(pool, JoinRequest()) for _ in range(21)]
        finally:
            tier_unlocked.disconnect(receiver, sender=MemoryPool)

        assert results[20].tier_unlocked is True
        assert results[20].tier_index == 1
        assert results[20].price == 4168
        assert [event["position"] for event in received] == [21]
        assert received[0]["tier_index"] == 1


class TestConcurrentAdmission:
    def test_parallel_joins_never_exceed_capacity(self):
        store = MemoryStore()
        controller = make_controller(store)
        pool = MemoryPool(total_capacity=100, waiting_list_capacity=20)
        results = []
        results_lock = threading.Lock()
        start = threading.Barrier(150)

        def join(n):
            start.wait()
            result = controller.admit(pool, JoinRequest(full_name=f"client-{n}"))
            with results_lock:
                results.append(result)

        threads = [threading.Thread(target=join, args=(n,)) for n in range(150)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        confirmed = [r for r in results if r.status == AdmissionStatus.CONFIRMED]
        waiting = [r for r in results if r.status == AdmissionStatus.WAITING_LIST]
        rejected = [r for r in results if r.status == AdmissionStatus.REJECTED]
        assert len(confirmed) == 100
        assert len(waiting) == 20
        assert len(rejected) == 30
        assert sorted(r.position for r in confirmed) == list(range(1, 101))
        assert sorted(r.position for r in waiting) == list(range(101, 121))
        assert all(r.price == PositionPricingCalculator().quote(TABLE, 4500, r.position).price for r in confirmed)
