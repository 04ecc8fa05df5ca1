"""Capacity-gated admission.

Core design principles:
- The pool's position sequence is the only shared mutable state; it is
  read-and-incremented under a row lock inside the admission transaction
- Positions are 1-based, global to the pool and never reused
- Full capacity and closed stages are results, not exceptions
- A storage conflict is retried once, then surfaced as ConcurrencyConflict
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional, Protocol

from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from admission.models import AdmissionStatus, RejectionReason
from admission.signals import tier_unlocked
from pricing import PositionPricingCalculator, PositionQuote, Tier, tier_changed

logger = logging.getLogger(__name__)


class ConcurrencyConflict(Exception):
    """Two admissions collided at the storage layer, even after a retry."""


@dataclass(frozen=True)
class JoinRequest:
    user: Any = None
    full_name: str = ""
    email: str = ""
    phone: str = ""
    quantity: int = 1
    extra: dict = field(default_factory=dict)


@dataclass(frozen=True)
class AdmissionDecision:
    """What the controller decided for one rank, handed to the store to persist."""

    status: str
    position: int
    quote: Optional[PositionQuote] = None

    @property
    def price(self) -> int | None:
        return self.quote.price if self.quote else None


@dataclass(frozen=True)
class AdmissionResult:
    status: str
    position: int | None = None
    tier: Tier | None = None
    tier_index: int | None = None
    position_in_tier: int | None = None
    price: int | None = None
    waiting_list_position: int | None = None
    reason: str | None = None
    registration: Any = None
    tier_unlocked: bool = False

    @property
    def is_admitted(self) -> bool:
        return self.status != AdmissionStatus.REJECTED

    @classmethod
    def rejected(cls, reason: str) -> "AdmissionResult":
        return cls(status=AdmissionStatus.REJECTED, reason=reason)


def classify_rank(rank: int, total_capacity: int, waiting_list_capacity: int) -> str:
    """Map a zero-based arrival rank to CONFIRMED, WAITING_LIST or REJECTED."""
    if rank < total_capacity:
        return AdmissionStatus.CONFIRMED
    if rank - total_capacity < waiting_list_capacity:
        return AdmissionStatus.WAITING_LIST
    return AdmissionStatus.REJECTED


class AdmissionStore(Protocol):
    """Transactional boundary the controller writes through."""

    conflict_errors: tuple

    def atomic(self): ...

    def lock(self, pool) -> Any: ...

    def next_rank(self, pool) -> int: ...

    def save(self, pool, join_request: JoinRequest, decision: AdmissionDecision) -> Any: ...

    def on_commit(self, callback: Callable[[], None]) -> None: ...

    def refresh(self, pool) -> None: ...


class DjangoAdmissionStore:
    """Store backed by the pool's database row."""

    conflict_errors = (IntegrityError, OperationalError)

    def atomic(self):
        return transaction.atomic()

    def lock(self, pool):
        return pool.lock_for_admission()

    def next_rank(self, pool) -> int:
        return pool.take_next_rank()

    def save(self, pool, join_request: JoinRequest, decision: AdmissionDecision):
        registration = pool.create_registration(join_request, decision)
        pool.adjust_occupancy(decision.status, 1)
        return registration

    def on_commit(self, callback: Callable[[], None]) -> None:
        transaction.on_commit(callback)

    def refresh(self, pool) -> None:
        pool.refresh_from_db()


class CapacityAdmissionController:
    """Admit, wait-list or reject a join request against a pool.

    The caller's *pool* may be stale. Registration gating is checked on it
    as a fast path, then again on the locked copy the store returns; every
    decision is taken on that copy, and the caller's instance is only
    reloaded once the admission transaction has been left.
    """

    max_attempts = 2

    def __init__(
        self,
        store: AdmissionStore | None = None,
        pricing: PositionPricingCalculator | None = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self.store = store or DjangoAdmissionStore()
        self.pricing = pricing or PositionPricingCalculator.from_settings()
        self.clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def admit(self, pool, join_request: JoinRequest, now: datetime | None = None) -> AdmissionResult:
        now = now or self.clock()
        if not pool.is_registration_open(now):
            logger.info("Join rejected on %s: registration closed", pool)
            return AdmissionResult.rejected(RejectionReason.STAGE_CLOSED)

        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = self._admit_once(pool, join_request, now)
            except self.store.conflict_errors as exc:
                last_error = exc
                logger.warning(
                    "Admission conflict on %s (attempt %d/%d): %s",
                    pool, attempt, self.max_attempts, exc,
                )
                continue
            self.store.refresh(pool)
            return result
        raise ConcurrencyConflict(
            "Trop de demandes simultanees sur cette offre, veuillez reessayer."
        ) from last_error

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _admit_once(self, pool, join_request: JoinRequest, now: datetime) -> AdmissionResult:
        with self.store.atomic():
            locked = self.store.lock(pool)
            if not locked.is_registration_open(now):
                logger.info("Join rejected on %s: registration closed (seen under lock)", locked)
                return AdmissionResult.rejected(RejectionReason.STAGE_CLOSED)

            rank = self.store.next_rank(locked)
            status = classify_rank(rank, locked.total_capacity, locked.waiting_list_capacity)
            if status == AdmissionStatus.REJECTED:
                logger.info("Join rejected on %s: capacity exceeded (rank=%d)", locked, rank)
                return AdmissionResult.rejected(RejectionReason.CAPACITY_EXCEEDED)

            position = rank + 1
            quote = None
            unlocked = False
            if status == AdmissionStatus.CONFIRMED:
                table = locked.tier_table()
                quote = self.pricing.quote(table, locked.base_price, position)
                unlocked = position > 1 and tier_changed(table, position - 1, position)

            decision = AdmissionDecision(status=status, position=position, quote=quote)
            registration = self.store.save(locked, join_request, decision)

            if unlocked:
                self.store.on_commit(lambda: self._announce_tier(locked, quote))

        logger.info(
            "Join %s on %s: position=%d price=%s",
            status, locked, position, decision.price,
        )
        return AdmissionResult(
            status=status,
            position=position,
            tier=quote.tier if quote else None,
            tier_index=quote.tier_index if quote else None,
            position_in_tier=quote.position_in_tier if quote else None,
            price=decision.price,
            waiting_list_position=(
                position - locked.total_capacity if status == AdmissionStatus.WAITING_LIST else None
            ),
            registration=registration,
            tier_unlocked=unlocked,
        )

    def _announce_tier(self, pool, quote: PositionQuote) -> None:
        logger.info("Tier %d unlocked on %s at position %d", quote.tier_index + 1, pool, quote.position)
        tier_unlocked.send(
            sender=type(pool),
            pool=pool,
            tier=quote.tier,
            tier_index=quote.tier_index,
            position=quote.position,
        )
