from decimal import Decimal

from pricing import CommissionCalculator, Tier, commission


def test_default_commission_is_five_percent():
    split = commission(None, 3598)
    assert split.platform_cut == 180
    assert split.net_to_supplier == 3418
    assert split.commission_percent == Decimal("5")


def test_tier_commission_wins_over_deal_and_default():
    tier = Tier(1, 10, commission_percent=Decimal("10"))
    split = CommissionCalculator().commission(tier, 3598, deal_percent=Decimal("7.5"))
    assert split.platform_cut == 360
    assert split.net_to_supplier == 3238


def test_deal_commission_wins_over_default():
    split = CommissionCalculator(default_percent=5).commission(Tier(1, 10), 3598, deal_percent="7.5")
    assert split.platform_cut == 270
    assert split.commission_percent == Decimal("7.5")


def test_split_always_adds_up():
    split = commission(None, 4613)
    assert split.platform_cut + split.net_to_supplier == 4613
    assert split.as_dict()["commission_percent"] == "5"
