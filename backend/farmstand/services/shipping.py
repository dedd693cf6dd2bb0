import os
from decimal import Decimal
from typing import Optional

from farmstand.models.base import CamelModel
from farmstand.models.pricing import ShippingBreakdown
from farmstand.services.money import D, ZERO, JsonDecimal, format_amount, format_rate, round2

SHIPPING_METHODS = ("standard", "express", "pickup")


class ShippingRates(CamelModel):
    free_threshold: JsonDecimal = D("99")
    standard_base: JsonDecimal = D("8")
    standard_per_lb: JsonDecimal = D("0.30")
    standard_cap: JsonDecimal = D("29")
    express_base: JsonDecimal = D("18")
    express_per_lb: JsonDecimal = D("0.60")
    express_cap: JsonDecimal = D("49")

    @classmethod
    def from_env(cls) -> "ShippingRates":
        overrides = {}
        for field in cls.model_fields:
            value = os.getenv(f"SHIPPING_{field.upper()}")
            if value:
                overrides[field] = value
        return cls(**overrides)


def free_standard_description(rates: ShippingRates) -> str:
    return f"Free standard shipping on ${format_amount(rates.free_threshold)}+"


def compute_shipping(
    subtotal_after_discount: Decimal,
    total_weight: Decimal,
    method: str,
    rates: Optional[ShippingRates] = None,
) -> ShippingBreakdown:
    """Provisional shipping for an order; coupons and the free-shipping re-check may still lower it."""
    rates = rates or ShippingRates()

    if method == "pickup":
        return ShippingBreakdown(method="pickup", cost=ZERO, description="Free local farm pickup")

    if method == "standard":
        if subtotal_after_discount >= rates.free_threshold:
            return ShippingBreakdown(
                method="standard",
                cost=ZERO,
                description=free_standard_description(rates),
                free_threshold=rates.free_threshold,
            )
        cost = min(rates.standard_cap, rates.standard_base + rates.standard_per_lb * total_weight)
        return ShippingBreakdown(
            method="standard",
            cost=round2(cost),
            description=(
                f"Standard: ${format_amount(rates.standard_base)} + ${format_rate(rates.standard_per_lb)}/lb "
                f"(cap ${format_amount(rates.standard_cap)})"
            ),
            free_threshold=rates.free_threshold,
            capped_at=rates.standard_cap,
        )

    # express: no free threshold
    cost = min(rates.express_cap, rates.express_base + rates.express_per_lb * total_weight)
    return ShippingBreakdown(
        method="express",
        cost=round2(cost),
        description=(
            f"Express: ${format_amount(rates.express_base)} + ${format_rate(rates.express_per_lb)}/lb "
            f"(cap ${format_amount(rates.express_cap)})"
        ),
        capped_at=rates.express_cap,
    )
