"""Platform commission on a participant's paid price."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pricing.tiers import HUNDRED, Tier, round_currency, to_decimal

DEFAULT_COMMISSION_PERCENT = Decimal("5")


@dataclass(frozen=True)
class CommissionSplit:
    platform_cut: int
    net_to_supplier: int
    commission_percent: Decimal

    def as_dict(self) -> dict:
        return {
            "platform_cut": self.platform_cut,
            "net_to_supplier": self.net_to_supplier,
            "commission_percent": str(self.commission_percent),
        }


class CommissionCalculator:
    """Split a paid price between the platform and the supplier.

    The percentage is taken from the tier, then the deal, then the
    platform default.
    """

    def __init__(self, default_percent=DEFAULT_COMMISSION_PERCENT) -> None:
        self.default_percent = to_decimal(default_percent)

    @classmethod
    def from_settings(cls) -> "CommissionCalculator":
        from django.conf import settings

        return cls(getattr(settings, "PLATFORM_COMMISSION_PERCENT", DEFAULT_COMMISSION_PERCENT))

    def resolve_percent(self, tier: Tier | None, deal_percent=None) -> Decimal:
        if tier is not None and tier.commission_percent is not None:
            return tier.commission_percent
        if deal_percent is not None:
            return to_decimal(deal_percent)
        return self.default_percent

    def commission(self, tier: Tier | None, price_paid: int, deal_percent=None) -> CommissionSplit:
        percent = self.resolve_percent(tier, deal_percent)
        platform_cut = round_currency(to_decimal(price_paid) * percent / HUNDRED)
        return CommissionSplit(
            platform_cut=platform_cut,
            net_to_supplier=int(price_paid) - platform_cut,
            commission_percent=percent,
        )


def commission(tier: Tier | None, price_paid: int, deal_percent=None) -> CommissionSplit:
    return CommissionCalculator().commission(tier, price_paid, deal_percent)
