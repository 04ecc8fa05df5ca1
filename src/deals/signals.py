"""Signals: react to tier unlocks on retail deals."""
from __future__ import annotations

import logging

from django.dispatch import receiver

from admission.signals import tier_unlocked

logger = logging.getLogger("groupbuy")


@receiver(tier_unlocked, sender="deals.Deal")
def on_deal_tier_unlocked(sender, pool, tier, tier_index, position, **kwargs):
    logger.info(
        "Deal %s reached tier %d (%s-%s, -%s%%) at position %d",
        pool.pk,
        tier_index + 1,
        tier.min_participants,
        tier.max_participants,
        tier.discount_percent,
        position,
    )
