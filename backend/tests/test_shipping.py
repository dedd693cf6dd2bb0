from decimal import Decimal

from farmstand.services.shipping import ShippingRates, compute_shipping


def test_pickup_is_free():
    result = compute_shipping(Decimal("10.00"), Decimal("200"), "pickup")
    assert result.cost == 0
    assert result.description == "Free local farm pickup"
    assert result.free_threshold is None
    assert result.capped_at is None


def test_standard_per_pound():
    result = compute_shipping(Decimal("20.00"), Decimal("5"), "standard")
    assert result.cost == Decimal("9.50")
    assert result.description == "Standard: $8 + $0.30/lb (cap $29)"
    assert result.free_threshold == Decimal("99")
    assert result.capped_at == Decimal("29")


def test_standard_capped():
    # 8 + 0.30 * 90 = 35 > 29
    assert compute_shipping(Decimal("90.00"), Decimal("90"), "standard").cost == Decimal("29.00")


def test_standard_free_at_threshold():
    result = compute_shipping(Decimal("99.00"), Decimal("25"), "standard")
    assert result.cost == 0
    assert result.description == "Free standard shipping on $99+"
    assert result.capped_at is None
    assert compute_shipping(Decimal("98.99"), Decimal("25"), "standard").cost == Decimal("15.50")


def test_express_ignores_free_threshold():
    result = compute_shipping(Decimal("500.00"), Decimal("10"), "express")
    assert result.cost == Decimal("24.00")
    assert result.description == "Express: $18 + $0.60/lb (cap $49)"
    assert result.free_threshold is None
    assert compute_shipping(Decimal("500.00"), Decimal("100"), "express").cost == Decimal("49.00")


def test_custom_rates():
    rates = ShippingRates(free_threshold="50", standard_base="5", standard_per_lb="0.25", standard_cap="20")
    assert compute_shipping(Decimal("49.99"), Decimal("2"), "standard", rates).cost == Decimal("5.50")
    assert compute_shipping(Decimal("50.00"), Decimal("2"), "standard", rates).cost == 0


def test_rates_from_env(monkeypatch):
    monkeypatch.setenv("SHIPPING_FREE_THRESHOLD", "75")
    monkeypatch.setenv("SHIPPING_EXPRESS_CAP", "39.5")
    rates = ShippingRates.from_env()
    assert rates.free_threshold == Decimal("75")
    assert rates.express_cap == Decimal("39.5")
    assert rates.standard_base == Decimal("8")
    result = compute_shipping(Decimal("10.00"), Decimal("100"), "express", rates)
    assert result.cost == Decimal("39.50")
    assert result.description == "Express: $18 + $0.60/lb (cap $39.5)"
