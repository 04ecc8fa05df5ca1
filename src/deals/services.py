"""Business-logic / service functions for the deals app."""
from __future__ import annotations

import logging
from datetime import datetime

from django.db import transaction
from django.utils import timezone

from admission.controller import AdmissionResult, CapacityAdmissionController, JoinRequest
from admission.services import cancel_admission, pricing_overview
from deals.models import Deal, DealTier, Participant
from funnel import DealWindow
from pricing import CommissionCalculator, CommissionSplit, PositionPricingCalculator, TierTable

logger = logging.getLogger("groupbuy")


# ---------------------------------------------------------------------------
# Deal authoring
# ---------------------------------------------------------------------------

def build_tier_table(tiers_data, original_price: int) -> TierTable:
    """Validate raw tier dicts against *original_price*.

    Raises
    ------
    pricing.ConfigurationError
        If the table is malformed or a later tier costs more than an earlier one.
    """
    table = TierTable.from_rows(tiers_data)
    table.check_prices(original_price)
    return table


def _write_tiers(deal: Deal, table: TierTable) -> None:
    DealTier.objects.bulk_create([
        DealTier(
            deal=deal,
            min_participants=tier.min_participants,
            max_participants=tier.max_participants,
            discount_percent=tier.discount_percent,
            explicit_price=tier.explicit_price,
            commission_percent=tier.commission_percent,
        )
        for tier in table
    ])


@transaction.atomic
def create_deal(
    supplier,
    *,
    name: str,
    category: str,
    original_price: int,
    total_capacity: int,
    target_participants: int,
    end_time: datetime,
    tiers,
    waiting_list_capacity: int = 0,
    min_participants: int = 1,
    description: str = "",
    platform_commission_percent=None,
) -> Deal:
    """Create a DRAFT deal and its validated tier table.

    Raises
    ------
    pricing.ConfigurationError
        If the tier table is invalid.
    ValueError
        If capacities are inconsistent.
    """
    if total_capacity < 1:
        raise ValueError("La capacite totale doit etre d'au moins 1.")
    if min_participants > total_capacity:
        raise ValueError("Le minimum de participants depasse la capacite totale.")

    table = build_tier_table(tiers, original_price)

    deal = Deal.objects.create(
        supplier=supplier,
        name=name,
        category=category,
        description=description,
        original_price=original_price,
        total_capacity=total_capacity,
        waiting_list_capacity=waiting_list_capacity,
        target_participants=target_participants,
        min_participants=min_participants,
        end_time=end_time,
        platform_commission_percent=platform_commission_percent,
    )
    _write_tiers(deal, table)
    logger.info(
        "Deal %s created (DRAFT) by %s with %d tiers",
        deal.pk, supplier, len(table),
    )
    return deal


@transaction.atomic
def replace_tiers(deal: Deal, tiers, actor=None) -> TierTable:
    """Replace the tier table of a deal nobody has joined yet.

    Raises
    ------
    ValueError
        If positions were already handed out: existing participants are
        never re-priced.
    pricing.ConfigurationError
        If the new table is invalid.
    """
    deal = Deal.objects.select_for_update().get(pk=deal.pk)
    if deal.issued_positions > 0:
        raise ValueError(
            "Impossible de modifier les paliers: des participants ont deja rejoint l'offre."
        )

    table = build_tier_table(tiers, deal.original_price)
    deal.tiers.all().delete()
    _write_tiers(deal, table)
    logger.info("Tiers of deal %s replaced by %s (%d tiers)", deal.pk, actor, len(table))
    return table


@transaction.atomic
def activate_deal(deal: Deal, actor=None, now: datetime | None = None) -> Deal:
    """Move a DRAFT deal to ACTIVE.

    Raises
    ------
    ValueError
        If the deal is not a draft or its end time already passed.
    pricing.ConfigurationError
        If its tier table is invalid.
    """
    now = now or timezone.now()
    deal = Deal.objects.select_for_update().get(pk=deal.pk)
    if deal.status != Deal.Status.DRAFT:
        raise ValueError("Seule une offre en brouillon peut etre activee.")
    if deal.end_time <= now:
        raise ValueError("La date de fin de l'offre est deja passee.")
    deal.tier_table().check_prices(deal.original_price)

    deal.status = Deal.Status.ACTIVE
    deal.activated_at = now
    deal.save(update_fields=["status", "activated_at", "updated_at"])
    logger.info("Deal %s activated by %s", deal.pk, actor)
    return deal


# ---------------------------------------------------------------------------
# Joining
# ---------------------------------------------------------------------------

def join_deal(
    deal: Deal,
    join_request: JoinRequest,
    now: datetime | None = None,
    controller: CapacityAdmissionController | None = None,
) -> AdmissionResult:
    """Admit, wait-list or reject a customer on *deal*.

    Raises
    ------
    admission.controller.ConcurrencyConflict
        If the position could not be written even after a retry.
    """
    controller = controller or CapacityAdmissionController()
    return controller.admit(deal, join_request, now=now)


def cancel_participation(participant: Participant, actor=None) -> Participant:
    """Cancel a participant; the position is not handed out again."""
    return cancel_admission(participant, participant.deal, actor=actor)


def participant_commission(participant: Participant) -> CommissionSplit | None:
    """Platform / supplier split of a confirmed participant's price."""
    if participant.price_paid is None:
        return None
    deal = participant.deal
    tier = None
    if participant.tier_index is not None:
        tier = deal.tier_table()[participant.tier_index]
    return CommissionCalculator.from_settings().commission(
        tier,
        participant.price_paid,
        deal.platform_commission_percent,
    )


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

def deal_quote(deal: Deal, now: datetime | None = None) -> dict:
    """Pricing overview of *deal* plus its window state."""
    now = now or timezone.now()
    window = DealWindow()
    return {
        "deal_id": str(deal.pk),
        "status": deal.status,
        "window": window.state(deal.end_time, now, is_active=deal.status == Deal.Status.ACTIVE),
        "seconds_remaining": window.seconds_remaining(deal.end_time, now),
        "original_price": deal.original_price,
        "target_participants": deal.target_participants,
        **pricing_overview(deal),
    }


def price_simulation(deal: Deal, tier_index: int) -> list[dict]:
    """Every seat of one tier with its price (admin preview).

    Raises
    ------
    IndexError
        If the deal has no tier at *tier_index*.
    """
    table = deal.tier_table()
    if not 0 <= tier_index < len(table):
        raise IndexError(f"Palier {tier_index} inexistant.")
    return PositionPricingCalculator.from_settings().simulate(table[tier_index], deal.original_price)


# ---------------------------------------------------------------------------
# Closure
# ---------------------------------------------------------------------------

@transaction.atomic
def close_deal(deal: Deal, now: datetime | None = None, force: bool = False) -> Deal:
    """Settle an ACTIVE deal whose window is over.

    CLOSED when enough participants remain confirmed, CANCELLED otherwise
    (every participant is then cancelled). Payment capture is not done here.

    Raises
    ------
    ValueError
        If the deal is not active, or still open and *force* is not set.
    """
    now = now or timezone.now()
    deal = Deal.objects.select_for_update().get(pk=deal.pk)
    if deal.status != Deal.Status.ACTIVE:
        raise ValueError("Seule une offre active peut etre cloturee.")
    if not force and deal.is_registration_open(now):
        raise ValueError("L'offre est encore ouverte.")

    if deal.confirmed_count >= deal.min_participants:
        deal.status = Deal.Status.CLOSED
        logger.info(
            "Deal %s closed with %d confirmed participants",
            deal.pk, deal.confirmed_count,
        )
    else:
        deal.status = Deal.Status.CANCELLED
        cancelled = deal.participants.filter(cancelled_at__isnull=True).update(
            cancelled_at=now, updated_at=now,
        )
        logger.warning(
            "Deal %s cancelled: %d confirmed < minimum %d (%d participants cancelled)",
            deal.pk, deal.confirmed_count, deal.min_participants, cancelled,
        )
        deal.confirmed_count = 0
        deal.waiting_count = 0
    deal.closed_at = now
    deal.save(update_fields=[
        "status", "closed_at", "confirmed_count", "waiting_count", "updated_at",
    ])
    return deal


def close_expired_deals(now: datetime | None = None) -> int:
    """Close every ACTIVE deal whose end time has passed. Returns the count."""
    now = now or timezone.now()
    closed = 0
    expired = Deal.objects.filter(status=Deal.Status.ACTIVE, end_time__lte=now)
    for deal in expired:
        try:
            close_deal(deal, now=now)
            closed += 1
        except ValueError as exc:
            logger.warning("Deal %s not closed: %s", deal.pk, exc)
    return closed
