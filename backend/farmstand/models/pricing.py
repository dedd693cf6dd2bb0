from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import Field

from farmstand.models.base import CamelModel
from farmstand.services.money import JsonDecimal

ShippingMethod = Literal["standard", "express", "pickup"]
Currency = Literal["USD"]


class OrderItem(CamelModel):
    sku: str
    # Fractions are floored and out-of-range values clamped by the engine.
    quantity: Union[int, float] = 0


class PricingInput(CamelModel):
    items: List[OrderItem] = Field(default_factory=list)
    shipping_method: ShippingMethod = "standard"
    coupon_code: Optional[str] = None
    new_customer: bool = False


class LineItem(CamelModel):
    sku: str
    name: str
    unit_price: JsonDecimal
    unit_label: str
    quantity: int
    line_subtotal: JsonDecimal
    weight: JsonDecimal


class BulkDiscountBreakdown(CamelModel):
    percent: JsonDecimal
    amount: JsonDecimal
    tier_name: Optional[str] = None


class CouponBreakdown(CamelModel):
    code: str
    amount: JsonDecimal
    label: str
    reason: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.amount > 0


class ShippingBreakdown(CamelModel):
    method: ShippingMethod
    cost: JsonDecimal
    description: str
    free_threshold: Optional[JsonDecimal] = None
    capped_at: Optional[JsonDecimal] = None


class TaxBreakdown(CamelModel):
    rate: JsonDecimal
    amount: JsonDecimal
    label: str


class PricingResult(CamelModel):
    currency: Currency = "USD"
    items: List[LineItem]
    subtotal: JsonDecimal
    bulk_discount: BulkDiscountBreakdown
    coupon: Optional[CouponBreakdown] = None
    discount_total: JsonDecimal
    shipping: ShippingBreakdown
    tax: TaxBreakdown
    total_weight: JsonDecimal
    total: JsonDecimal
    notes: List[str] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready breakdown with camelCase keys and numeric amounts."""
        return self.model_dump(mode="json", by_alias=True)
