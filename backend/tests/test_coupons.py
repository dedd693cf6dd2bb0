import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from farmstand.services.coupons import (
    CouponRegistry,
    FixedCoupon,
    PercentCoupon,
    ShippingCoupon,
    is_expired,
    load_coupons,
    normalize_code,
)


def test_find_coupon_normalizes_code():
    registry = CouponRegistry()
    assert registry.find_coupon(" freshtomato10 ").code == "FRESHTOMATO10"
    assert registry.find_coupon("FreeShip").code == "FREESHIP"


@pytest.mark.parametrize("code", [None, "", "   ", "NOTREAL"])
def test_find_coupon_not_found(code):
    assert CouponRegistry().find_coupon(code) is None


def test_normalize_code():
    assert normalize_code("  welcome5 ") == "WELCOME5"
    assert normalize_code("   ") is None
    assert normalize_code(None) is None


def test_default_coupons_are_tagged_variants():
    registry = CouponRegistry()
    assert isinstance(registry.find_coupon("HARVEST20"), PercentCoupon)
    assert isinstance(registry.find_coupon("WELCOME5"), FixedCoupon)
    freeship = registry.find_coupon("FREESHIP")
    assert isinstance(freeship, ShippingCoupon)
    assert freeship.allows("standard")
    assert not freeship.allows("express")
    assert registry.find_coupon("WELCOME5").requires_new_customer


def test_list_coupons_is_copy():
    registry = CouponRegistry()
    listed = registry.list_coupons()
    assert [c.code for c in listed] == ["FRESHTOMATO10", "HARVEST20", "WELCOME5", "FREESHIP", "LOCALPICKUP"]
    listed.pop()
    assert len(registry.list_coupons()) == 5


def test_percent_coupon_requires_percent():
    with pytest.raises(ValidationError):
        PercentCoupon(code="BROKEN", label="no percent")
    with pytest.raises(ValidationError):
        PercentCoupon(code="BROKEN", label="too much", percent="1.5")


def test_fixed_coupon_requires_positive_amount():
    with pytest.raises(ValidationError):
        FixedCoupon(code="BROKEN", label="free money", amount="0")


def test_unrestricted_shipping_coupon_allows_any_method():
    coupon = ShippingCoupon(code="SHIPANY", label="any")
    assert coupon.allows("express")
    assert coupon.allows("pickup")


def test_is_expired():
    now = datetime(2025, 6, 4, tzinfo=timezone.utc)
    never = PercentCoupon(code="A", label="a", percent="0.1")
    past = PercentCoupon(code="B", label="b", percent="0.1", expires_at=now - timedelta(seconds=1))
    future = PercentCoupon(code="C", label="c", percent="0.1", expires_at=now + timedelta(days=1))
    exact = PercentCoupon(code="D", label="d", percent="0.1", expires_at=now)

    assert not is_expired(never, now)
    assert is_expired(past, now)
    assert not is_expired(future, now)
    # expiry is exclusive: still valid at the instant itself
    assert not is_expired(exact, now)


def test_naive_expiry_treated_as_utc():
    coupon = FixedCoupon(code="OLD", label="old", amount="1", expires_at=datetime(2020, 1, 1))
    assert coupon.expires_at.tzinfo is not None
    assert is_expired(coupon, datetime(2025, 1, 1, tzinfo=timezone.utc))


def test_duplicate_codes_rejected():
    with pytest.raises(ValueError):
        CouponRegistry([FixedCoupon(code="dup", label="a", amount="1"), FixedCoupon(code="DUP", label="b", amount="2")])


def test_load_coupons_from_json(tmp_path):
    path = tmp_path / "coupons.json"
    path.write_text(
        json.dumps(
            [
                {"type": "percent", "code": "summer15", "percent": 0.15, "label": "Summer"},
                {"type": "fixed", "code": "TENOFF", "amount": 10, "minSubtotal": 50, "label": "Ten"},
                {"type": "shipping", "code": "SHIPX", "appliesToShippingMethod": ["express"], "label": "Express on us"},
            ]
        )
    )
    registry = load_coupons(str(path))
    assert registry.find_coupon("SUMMER15").percent == Decimal("0.15")
    assert registry.find_coupon("tenoff").min_subtotal == Decimal("50")
    assert registry.find_coupon("SHIPX").allows("express")


def test_load_coupons_rejects_untagged(tmp_path):
    path = tmp_path / "coupons.json"
    path.write_text(json.dumps([{"code": "X", "label": "x", "percent": 0.1}]))
    with pytest.raises(RuntimeError):
        load_coupons(str(path))
