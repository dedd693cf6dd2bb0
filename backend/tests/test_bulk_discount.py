from decimal import Decimal

from farmstand.services.bulk_discount import BulkDiscountPolicy, BulkTier, compute_bulk_discount


def test_no_tier_below_thirty_pounds():
    result = compute_bulk_discount(Decimal("100.00"), Decimal("29"))
    assert result.percent == 0
    assert result.amount == Decimal("0.00")
    assert result.tier_name is None


def test_highest_qualifying_tier_wins():
    assert compute_bulk_discount(Decimal("100.00"), Decimal("30")).tier_name == "Family 5% off (30+ lb)"
    assert compute_bulk_discount(Decimal("100.00"), Decimal("60")).tier_name == "Canner 8% off (60+ lb)"
    assert compute_bulk_discount(Decimal("100.00"), Decimal("99.5")).tier_name == "Canner 8% off (60+ lb)"
    top = compute_bulk_discount(Decimal("320.00"), Decimal("100"))
    assert top.tier_name == "Farm Partner 12% off (100+ lb)"
    assert top.percent == Decimal("0.12")
    assert top.amount == Decimal("38.40")


def test_amount_is_rounded_to_cents():
    result = compute_bulk_discount(Decimal("148.50"), Decimal("33"))
    assert result.amount == Decimal("7.43")


def test_tiers_sorted_regardless_of_input_order():
    policy = BulkDiscountPolicy(
        [
            BulkTier(min_weight="10", percent="0.02", name="small"),
            BulkTier(min_weight="50", percent="0.10", name="big"),
        ]
    )
    assert [t.name for t in policy.tiers] == ["big", "small"]
    assert policy.compute(Decimal("200.00"), Decimal("75")).amount == Decimal("20.00")


def test_empty_policy_never_discounts():
    policy = BulkDiscountPolicy([])
    assert policy.compute(Decimal("500.00"), Decimal("1000")).amount == 0
