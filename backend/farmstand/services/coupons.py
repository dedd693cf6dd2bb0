import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import FrozenSet, Iterable, List, Literal, Optional, Union, Annotated

from pydantic import Field, TypeAdapter, ValidationError, field_validator

from farmstand.models.base import CamelModel
from farmstand.models.pricing import ShippingMethod
from farmstand.services.money import JsonDecimal

logger = logging.getLogger(__name__)


class CouponBase(CamelModel):
    code: str = Field(min_length=1)
    label: str
    # Compared against the subtotal after the bulk discount.
    min_subtotal: Optional[JsonDecimal] = Field(default=None, ge=0)
    requires_new_customer: bool = False
    expires_at: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("expires_at")
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class PercentCoupon(CouponBase):
    type: Literal["percent"] = "percent"
    percent: JsonDecimal = Field(gt=0, le=1)


class FixedCoupon(CouponBase):
    type: Literal["fixed"] = "fixed"
    amount: JsonDecimal = Field(gt=0)


class ShippingCoupon(CouponBase):
    type: Literal["shipping"] = "shipping"
    # None means any shipping method.
    applies_to_shipping_method: Optional[FrozenSet[ShippingMethod]] = None

    def allows(self, method: str) -> bool:
        return self.applies_to_shipping_method is None or method in self.applies_to_shipping_method


Coupon = Annotated[
    Union[PercentCoupon, FixedCoupon, ShippingCoupon],
    Field(discriminator="type"),
]


DEFAULT_COUPONS = (
    PercentCoupon(code="FRESHTOMATO10", percent="0.10", min_subtotal="25", label="10% off fresh pickings"),
    PercentCoupon(code="HARVEST20", percent="0.20", min_subtotal="80", label="20% off harvest orders $80+"),
    FixedCoupon(
        code="WELCOME5",
        amount="5",
        requires_new_customer=True,
        min_subtotal="20",
        label="Welcome bonus $5 off",
    ),
    ShippingCoupon(
        code="FREESHIP",
        applies_to_shipping_method=frozenset({"standard"}),
        min_subtotal="45",
        label="Free standard shipping $45+",
    ),
    ShippingCoupon(
        code="LOCALPICKUP",
        applies_to_shipping_method=frozenset({"pickup"}),
        label="Free local pickup",
    ),
)


def normalize_code(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    return str(code).strip().upper() or None


def is_expired(coupon: CouponBase, now: Optional[datetime] = None) -> bool:
    if coupon.expires_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now > coupon.expires_at


class CouponRegistry:
    """Published promotions, looked up by normalized code."""

    def __init__(self, coupons: Optional[Iterable[CouponBase]] = None):
        entries = tuple(DEFAULT_COUPONS if coupons is None else coupons)
        by_code = {}
        for coupon in entries:
            if coupon.code in by_code:
                raise ValueError(f"Duplicate coupon code: {coupon.code}")
            by_code[coupon.code] = coupon
        self._coupons = entries
        self._by_code = by_code

    def find_coupon(self, code: Optional[str]) -> Optional[CouponBase]:
        norm = normalize_code(code)
        if norm is None:
            return None
        return self._by_code.get(norm)

    def list_coupons(self) -> List[CouponBase]:
        return list(self._coupons)


_coupon_list = TypeAdapter(List[Coupon])


def load_coupons(path: str) -> CouponRegistry:
    """Build a registry from a JSON list of coupons tagged by "type"."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        coupons = _coupon_list.validate_python(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise RuntimeError(f"Could not load coupons from {path}: {e}") from e
    logger.info("Loaded %d coupons from %s", len(coupons), path)
    return CouponRegistry(coupons)
