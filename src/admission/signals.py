"""Signals emitted by the admission controller."""
from django.db.models.signals import ModelSignal

# Sent after commit when an admission moves a pool into a new tier.
# sender is the pool model; kwargs: pool, tier, tier_index, position
tier_unlocked = ModelSignal(use_caching=True)
