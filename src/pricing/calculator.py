"""Position-based pricing inside a discount tier.

The first participant of a tier pays the nominal tier price minus the
variance, the last one pays it plus the variance, and everyone in between
is interpolated linearly on the already-rounded endpoints.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from pricing.tiers import ONE_UNIT, HUNDRED, Tier, TierTable, round_currency, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_VARIANCE_PERCENT = Decimal("2.5")


@dataclass(frozen=True)
class PositionPricing:
    """Display summary of a tier's price spread."""

    first_buyer_price: int
    last_buyer_price: int
    avg_price: int

    def as_dict(self) -> dict:
        return {
            "first_buyer_price": self.first_buyer_price,
            "last_buyer_price": self.last_buyer_price,
            "avg_price": self.avg_price,
        }


@dataclass(frozen=True)
class PositionQuote:
    """Price charged for one global position."""

    tier: Tier
    tier_index: int
    position: int
    position_in_tier: int
    price: int


class PositionPricingCalculator:
    """Maps (tier, position within tier) to the price a participant pays."""

    def __init__(self, variance_percent=DEFAULT_VARIANCE_PERCENT) -> None:
        variance = to_decimal(variance_percent)
        if not Decimal("0") <= variance < HUNDRED:
            raise ValueError("La variance de position doit etre comprise entre 0 et 100.")
        self.variance = variance / HUNDRED

    @classmethod
    def from_settings(cls) -> "PositionPricingCalculator":
        from django.conf import settings

        return cls(getattr(settings, "POSITION_PRICE_VARIANCE_PERCENT", DEFAULT_VARIANCE_PERCENT))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def summary(self, tier: Tier, original_price) -> PositionPricing:
        nominal = tier.nominal_price(original_price)
        if tier.size == 1:
            return PositionPricing(nominal, nominal, nominal)
        return PositionPricing(
            first_buyer_price=round_currency(nominal * (ONE_UNIT - self.variance)),
            last_buyer_price=round_currency(nominal * (ONE_UNIT + self.variance)),
            avg_price=nominal,
        )

    def price_for_position(
        self,
        tier: Tier,
        original_price,
        position_within_tier: int,
        tier_size: int | None = None,
    ) -> int:
        """Price paid by the participant ranked *position_within_tier* (1-based).

        Raises
        ------
        ValueError
            If the position falls outside ``1..tier_size``.
        """
        size = tier.size if tier_size is None else tier_size
        if size < 1:
            raise ValueError("La taille du palier doit etre d'au moins 1.")
        if not 1 <= position_within_tier <= size:
            raise ValueError(
                f"Position {position_within_tier} hors du palier (1..{size})."
            )

        pricing = self.summary(tier, original_price)
        if size == 1:
            return pricing.avg_price

        ratio = Decimal(position_within_tier - 1) / Decimal(size - 1)
        spread = pricing.last_buyer_price - pricing.first_buyer_price
        return round_currency(pricing.first_buyer_price + spread * ratio)

    def quote(self, table: TierTable, original_price, position: int) -> PositionQuote:
        """Resolve the tier of a global *position* and price it.

        Positions past the final tier are priced as the final tier's last seat.
        """
        tier_index = table.index_for(position)
        tier = table[tier_index]
        position_in_tier = tier.position_within(position)
        price = self.price_for_position(tier, original_price, position_in_tier)
        return PositionQuote(
            tier=tier,
            tier_index=tier_index,
            position=position,
            position_in_tier=position_in_tier,
            price=price,
        )

    def describe(self, tier: Tier, original_price) -> dict:
        """Tier range and prices, as shown next to a deal."""
        return {
            "min_participants": tier.min_participants,
            "max_participants": tier.max_participants,
            "discount_percent": str(tier.discount_percent),
            "nominal_price": tier.nominal_price(original_price),
            **self.summary(tier, original_price).as_dict(),
        }

    def simulate(self, tier: Tier, original_price) -> list[dict]:
        """Price every seat of *tier*, with the step from the previous seat."""
        rows = []
        previous = None
        for position in range(1, tier.size + 1):
            price = self.price_for_position(tier, original_price, position)
            rows.append({
                "position": position,
                "global_position": tier.min_participants + position - 1,
                "price": price,
                "difference_from_previous": 0 if previous is None else price - previous,
            })
            previous = price
        return rows


def price_for_position(tier: Tier, original_price, position_within_tier: int, tier_size: int | None = None) -> int:
    return PositionPricingCalculator().price_for_position(
        tier, original_price, position_within_tier, tier_size,
    )


def position_pricing(tier: Tier, original_price) -> PositionPricing:
    return PositionPricingCalculator().summary(tier, original_price)


def tier_changed(table: TierTable, old_count: int, new_count: int) -> bool:
    """True when going from *old_count* to *new_count* participants moves tiers."""
    changed = table.index_for(old_count) != table.index_for(new_count)
    if changed:
        logger.debug("Tier change %s -> %s participants", old_count, new_count)
    return changed


def simulate_tier(tier: Tier, original_price) -> list[dict]:
    return PositionPricingCalculator().simulate(tier, original_price)
