"""Tiered group-buy pricing: tier tables, position pricing and commission."""
from pricing.calculator import (
    PositionPricing,
    PositionPricingCalculator,
    PositionQuote,
    position_pricing,
    price_for_position,
    simulate_tier,
    tier_changed,
)
from pricing.commission import CommissionCalculator, CommissionSplit, commission
from pricing.tiers import ConfigurationError, Tier, TierTable, resolve_tier, round_currency

__all__ = [
    "CommissionCalculator",
    "CommissionSplit",
    "ConfigurationError",
    "PositionPricing",
    "PositionPricingCalculator",
    "PositionQuote",
    "Tier",
    "TierTable",
    "commission",
    "position_pricing",
    "price_for_position",
    "resolve_tier",
    "round_currency",
    "simulate_tier",
    "tier_changed",
]
