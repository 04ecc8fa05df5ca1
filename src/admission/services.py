"""Service functions shared by every admission pool."""
from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from pricing import PositionPricingCalculator

logger = logging.getLogger("groupbuy")


@transaction.atomic
def cancel_admission(registration, pool, actor=None):
    """Cancel an admitted registration.

    The position is kept on the record and never handed out again; only
    the pool's effective occupancy goes down.

    Raises
    ------
    ValueError
        If the registration is already cancelled.
    """
    registration = type(registration).objects.select_for_update().get(pk=registration.pk)
    if registration.is_cancelled:
        raise ValueError("Cette inscription est deja annulee.")

    registration.cancelled_at = timezone.now()
    registration.save(update_fields=["cancelled_at", "updated_at"])
    pool.adjust_occupancy(registration.admission_status, -1)

    logger.info(
        "Registration %s (position %d) cancelled on %s by %s",
        registration.pk, registration.position, pool, actor,
    )
    return registration


def pricing_overview(pool, calculator=None) -> dict:
    """Current tier, next tier and the price the next joiner would pay.

    The current tier follows the effective confirmed count; the next
    joiner's price follows the position sequence, which never goes back.
    """
    calculator = calculator or PositionPricingCalculator.from_settings()
    table = pool.tier_table()
    base_price = pool.base_price

    participants = pool.confirmed_count
    tier_index = table.index_for(participants)
    upcoming = table.next_tier(participants)

    next_position = pool.issued_positions + 1
    next_price = None
    if next_position <= pool.total_capacity:
        next_price = calculator.quote(table, base_price, next_position).price

    return {
        "base_price": base_price,
        "participants": participants,
        "waiting_list": pool.waiting_count,
        "current_tier_index": tier_index,
        "current_tier": calculator.describe(table[tier_index], base_price),
        "next_tier": calculator.describe(upcoming, base_price) if upcoming else None,
        "participants_to_next_tier": (
            max(0, upcoming.min_participants - participants) if upcoming else None
        ),
        "next_position": next_position,
        "next_price": next_price,
        "remaining_capacity": pool.remaining_capacity,
        "remaining_waiting_list": pool.remaining_waiting_list,
    }
