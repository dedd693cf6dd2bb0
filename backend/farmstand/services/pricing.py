import logging
import math
import os
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import List, Optional, Tuple

from farmstand.models.pricing import (
    CouponBreakdown,
    LineItem,
    PricingInput,
    PricingResult,
    ShippingBreakdown,
)
from farmstand.services.bulk_discount import BulkDiscountPolicy
from farmstand.services.catalog import Catalog, load_catalog
from farmstand.services.coupons import (
    CouponBase,
    CouponRegistry,
    FixedCoupon,
    PercentCoupon,
    ShippingCoupon,
    is_expired,
    load_coupons,
)
from farmstand.services.money import D, ZERO, clamp, format_amount, round2, to_decimal
from farmstand.services.shipping import ShippingRates, compute_shipping, free_standard_description
from farmstand.services.tax import TaxPolicy

logger = logging.getLogger(__name__)


class PricingEngine:
    """Order pricing over immutable catalog, coupon, bulk-tier, shipping and tax tables.

    The steps run in a fixed business order: line items, subtotal, bulk
    discount, provisional shipping, coupon, post-coupon subtotal, free
    shipping re-check, tax, totals. Reordering them changes what customers pay.

    Bad input never raises: unknown SKUs are dropped, quantities clamped,
    ineligible coupons reported with a reason and no monetary effect.
    """

    def __init__(
        self,
        catalog: Optional[Catalog] = None,
        coupons: Optional[CouponRegistry] = None,
        bulk_policy: Optional[BulkDiscountPolicy] = None,
        shipping_rates: Optional[ShippingRates] = None,
        tax_policy: Optional[TaxPolicy] = None,
    ):
        self.catalog = catalog or Catalog()
        self.coupons = coupons or CouponRegistry()
        self.bulk_policy = bulk_policy or BulkDiscountPolicy()
        self.shipping_rates = shipping_rates or ShippingRates()
        self.tax_policy = tax_policy or TaxPolicy()

    @classmethod
    def from_env(cls) -> "PricingEngine":
        catalog_file = os.getenv("CATALOG_FILE")
        coupons_file = os.getenv("COUPONS_FILE")
        return cls(
            catalog=load_catalog(catalog_file) if catalog_file else None,
            coupons=load_coupons(coupons_file) if coupons_file else None,
            shipping_rates=ShippingRates.from_env(),
            tax_policy=TaxPolicy.from_env(),
        )

    def build_line_items(self, pricing_input: PricingInput) -> List[LineItem]:
        items: List[LineItem] = []
        for requested in pricing_input.items:
            detail = self.catalog.find_sku(requested.sku)
            if detail is None:
                logger.debug("Skipping unknown sku=%s", requested.sku)
                continue

            low, high = detail.quantity_bounds
            qty = clamp(_floor_quantity(requested.quantity), low, high)
            if qty <= 0:
                logger.debug("Skipping sku=%s with quantity=%s", requested.sku, qty)
                continue

            items.append(
                LineItem(
                    sku=detail.sku,
                    name=detail.name,
                    unit_price=detail.unit_price,
                    unit_label=detail.unit_label,
                    quantity=qty,
                    line_subtotal=round2(detail.unit_price * qty),
                    weight=detail.unit_weight * qty,
                )
            )
        return items

    def evaluate_coupon(
        self,
        coupon: Optional[CouponBase],
        *,
        new_customer: bool,
        shipping_method: str,
        subtotal_after_bulk: Decimal,
        current_shipping_cost: Decimal,
        now: datetime,
    ) -> Optional[CouponBreakdown]:
        if coupon is None:
            return None

        def rejected(reason: str) -> CouponBreakdown:
            return CouponBreakdown(code=coupon.code, amount=ZERO, label=coupon.label, reason=reason)

        if is_expired(coupon, now):
            return rejected("Expired")
        if coupon.requires_new_customer and not new_customer:
            return rejected("New customers only")
        if coupon.min_subtotal and subtotal_after_bulk < coupon.min_subtotal:
            return rejected(f"Requires ${format_amount(coupon.min_subtotal)}+ subtotal")

        if isinstance(coupon, ShippingCoupon):
            if not coupon.allows(shipping_method):
                return rejected("Not valid for chosen shipping")
            amount = round2(current_shipping_cost)
        elif isinstance(coupon, FixedCoupon):
            amount = round2(min(coupon.amount, subtotal_after_bulk))
        elif isinstance(coupon, PercentCoupon):
            amount = round2(subtotal_after_bulk * coupon.percent)
        else:
            return None

        return CouponBreakdown(code=coupon.code, amount=amount, label=coupon.label)

    def calculate(self, pricing_input: PricingInput, now: Optional[datetime] = None) -> PricingResult:
        now = now or datetime.now(timezone.utc)
        method = pricing_input.shipping_method or "standard"
        rates = self.shipping_rates

        items = self.build_line_items(pricing_input)
        subtotal = round2(sum((li.line_subtotal for li in items), ZERO))
        total_weight = sum((li.weight for li in items), D("0"))

        bulk = self.bulk_policy.compute(subtotal, total_weight)
        after_bulk = round2(max(ZERO, subtotal - bulk.amount))

        shipping = compute_shipping(after_bulk, total_weight, method, rates)

        coupon_def = self.coupons.find_coupon(pricing_input.coupon_code)
        coupon = self.evaluate_coupon(
            coupon_def,
            new_customer=pricing_input.new_customer,
            shipping_method=method,
            subtotal_after_bulk=after_bulk,
            current_shipping_cost=shipping.cost,
            now=now,
        )

        shipping, coupon, subtotal_coupon_amount = _apply_coupon(coupon_def, coupon, shipping)
        subtotal_after_all = round2(max(ZERO, after_bulk - subtotal_coupon_amount))

        # Re-evaluated after every subtotal-affecting step.
        if method == "standard" and shipping.cost > 0 and subtotal_after_all >= rates.free_threshold:
            shipping = shipping.model_copy(update={"cost": ZERO, "description": free_standard_description(rates)})

        tax = self.tax_policy.compute(subtotal_after_all)

        coupon_amount = coupon.amount if coupon is not None else ZERO
        discount_total = round2(bulk.amount + coupon_amount)
        total = round2(subtotal_after_all + shipping.cost + tax.amount)

        notes: List[str] = []
        if bulk.percent > 0 and bulk.tier_name:
            notes.append(bulk.tier_name)
        if shipping.method == "standard" and shipping.cost == 0:
            notes.append(f"Free standard shipping threshold met (${format_amount(rates.free_threshold)})")
        if coupon is not None and coupon.applied:
            notes.append(f"Coupon applied: {coupon.code}")
        if not items:
            notes.append("No valid items in order")

        logger.debug(
            "Priced order items=%d subtotal=%s discount=%s shipping=%s total=%s coupon=%s",
            len(items),
            subtotal,
            discount_total,
            shipping.cost,
            total,
            coupon.code if coupon else None,
        )

        return PricingResult(
            items=items,
            subtotal=subtotal,
            bulk_discount=bulk,
            coupon=coupon,
            discount_total=discount_total,
            shipping=shipping,
            tax=tax,
            total_weight=total_weight,
            total=total,
            notes=notes,
        )


def _floor_quantity(quantity) -> int:
    value = to_decimal(quantity)
    return int(math.floor(value))


def _apply_coupon(
    coupon_def: Optional[CouponBase],
    coupon: Optional[CouponBreakdown],
    shipping: ShippingBreakdown,
) -> Tuple[ShippingBreakdown, Optional[CouponBreakdown], Decimal]:
    """Route the coupon amount to shipping or to the subtotal. Returns the amount that reduces the subtotal."""
    if coupon is None or coupon_def is None:
        return shipping, coupon, ZERO

    if isinstance(coupon_def, ShippingCoupon):
        applied = round2(min(shipping.cost, coupon.amount))
        shipping = shipping.model_copy(update={"cost": round2(shipping.cost - applied)})
        coupon = coupon.model_copy(update={"amount": applied})
        return shipping, coupon, ZERO

    return shipping, coupon, coupon.amount


@lru_cache(maxsize=1)
def get_pricing_engine() -> PricingEngine:
    """Process-wide engine; tables are loaded once at startup."""
    engine = PricingEngine.from_env()
    logger.info(
        "Pricing engine ready skus=%d coupons=%d tax_rate=%s",
        len(engine.catalog),
        len(engine.coupons.list_coupons()),
        engine.tax_policy.rate,
    )
    return engine


def calculate_pricing(pricing_input: PricingInput, now: Optional[datetime] = None) -> PricingResult:
    return get_pricing_engine().calculate(pricing_input, now=now)
