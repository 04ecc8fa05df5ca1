"""Signals: react to tier unlocks on real-estate projects."""
from __future__ import annotations

import logging

from django.dispatch import receiver

from admission.signals import tier_unlocked

logger = logging.getLogger("groupbuy")


@receiver(tier_unlocked, sender="realestate.Project")
def on_project_tier_unlocked(sender, pool, tier, tier_index, position, **kwargs):
    logger.info(
        "Project %s (%s) opened price step %d at registrant %d",
        pool.slug, pool.city, tier_index + 1, position,
    )
