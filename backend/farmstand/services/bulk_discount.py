from decimal import Decimal
from typing import Iterable, Optional

from pydantic import Field

from farmstand.models.base import CamelModel
from farmstand.models.pricing import BulkDiscountBreakdown
from farmstand.services.money import D, ZERO, JsonDecimal, round2


class BulkTier(CamelModel):
    min_weight: JsonDecimal = Field(ge=0)  # lb
    percent: JsonDecimal = Field(ge=0, le=1)
    name: str


NO_BULK_DISCOUNT = BulkDiscountBreakdown(percent=D("0"), amount=ZERO, tier_name=None)

DEFAULT_TIERS = (
    BulkTier(min_weight="100", percent="0.12", name="Farm Partner 12% off (100+ lb)"),
    BulkTier(min_weight="60", percent="0.08", name="Canner 8% off (60+ lb)"),
    BulkTier(min_weight="30", percent="0.05", name="Family 5% off (30+ lb)"),
)


class BulkDiscountPolicy:
    """Weight-based automatic discount. Tiers never stack: the highest qualifying threshold wins."""

    def __init__(self, tiers: Optional[Iterable[BulkTier]] = None):
        tiers = DEFAULT_TIERS if tiers is None else tiers
        self._tiers = tuple(sorted(tiers, key=lambda t: t.min_weight, reverse=True))

    @property
    def tiers(self) -> tuple:
        return self._tiers

    def tier_for(self, total_weight: Decimal) -> Optional[BulkTier]:
        for tier in self._tiers:
            if total_weight >= tier.min_weight:
                return tier
        return None

    def compute(self, subtotal: Decimal, total_weight: Decimal) -> BulkDiscountBreakdown:
        tier = self.tier_for(total_weight)
        if tier is None:
            return NO_BULK_DISCOUNT
        return BulkDiscountBreakdown(
            percent=tier.percent,
            amount=round2(subtotal * tier.percent),
            tier_name=tier.name,
        )


_default_policy = BulkDiscountPolicy()


def compute_bulk_discount(subtotal: Decimal, total_weight: Decimal) -> BulkDiscountBreakdown:
    return _default_policy.compute(subtotal, total_weight)
