import math
import re
from typing import Any, Dict, List, Optional

from farmstand.services.shipping import SHIPPING_METHODS

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$")
PHONE_RE = re.compile(r"^\+?\d{7,15}$")
POSTAL_CODE_PATTERNS = (
    re.compile(r"^\d{5}(-\d{4})?$"),  # US
    re.compile(r"^[A-Za-z]\d[A-Za-z][ -]?\d[A-Za-z]\d$"),  # CA
    re.compile(r"^[A-Za-z0-9 \-]{3,12}$"),
)
CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
WHITESPACE_RE = re.compile(r"\s+")

MAX_ITEMS = 20
MAX_QUANTITY = 100
MAX_SKU_LENGTH = 64
MAX_COUPON_LENGTH = 32
MAX_NOTES_LENGTH = 1000


def collapse_whitespace(value: str) -> str:
    return WHITESPACE_RE.sub(" ", value).strip()


def coerce_string(value: Any, fallback: str = "") -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        try:
            if math.isfinite(value):
                return str(value)
        except (OverflowError, ValueError):
            # ints too large for a float, or past the int-to-str digit limit
            return fallback
    return fallback


def coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) or (isinstance(value, str) and value.strip()):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def is_valid_email(email: str) -> bool:
    email = email.lower()
    if len(email) > 254:
        return False
    return bool(EMAIL_RE.match(email))


def normalize_phone(value: str) -> str:
    trimmed = value.strip()
    digits = re.sub(r"\D", "", trimmed)
    if not digits:
        return ""
    return f"+{digits}" if trimmed.startswith("+") else digits


def is_valid_phone(value: str) -> bool:
    return bool(PHONE_RE.match(normalize_phone(value)))


def is_valid_postal_code(value: str) -> bool:
    code = value.strip()
    return any(p.match(code) for p in POSTAL_CODE_PATTERNS)


def sanitize_text(value: str, max_len: int) -> str:
    return collapse_whitespace(CONTROL_CHARS_RE.sub("", value))[:max_len]


def _result(errors: Dict[str, str], data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if errors:
        return {"ok": False, "data": None, "errors": errors}
    return {"ok": True, "data": data, "errors": {}}


class Validator:
    """Field-level checks for the order and newsletter forms.

    Runs before pricing so the engine only ever sees structurally valid input.
    Results are dicts: {"ok": bool, "data": cleaned fields or None,
    "errors": {field: message}}. Error keys are stable so the form can map
    them back to inputs (items[0].quantity, address_postalCode, ...).
    """

    def validate_newsletter(self, payload: Any) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            return _result({"payload": "Invalid payload"}, None)

        errors: Dict[str, str] = {}

        email = collapse_whitespace(coerce_string(payload.get("email"))).lower()
        if not email:
            errors["email"] = "Email is required"
        elif not is_valid_email(email):
            errors["email"] = "Please provide a valid email address"

        name = sanitize_text(coerce_string(payload.get("name")), 100) or None
        if name and not 2 <= len(name) <= 80:
            errors["name"] = "Name must be between 2 and 80 characters"

        source = sanitize_text(coerce_string(payload.get("source")), 40) or None

        return _result(errors, {"email": email, "name": name, "source": source})

    def validate_order(self, payload: Any) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            return _result({"payload": "Invalid payload"}, None)

        errors: Dict[str, str] = {}

        name = collapse_whitespace(coerce_string(payload.get("name")))
        if not name:
            errors["name"] = "Name is required"
        elif not 2 <= len(name) <= 80:
            errors["name"] = "Name must be between 2 and 80 characters"

        email = collapse_whitespace(coerce_string(payload.get("email"))).lower()
        if not email:
            errors["email"] = "Email is required"
        elif not is_valid_email(email):
            errors["email"] = "Please enter a valid email address"

        phone = None
        phone_raw = coerce_string(payload.get("phone")).strip()
        if phone_raw:
            if is_valid_phone(phone_raw):
                phone = normalize_phone(phone_raw)
            else:
                errors["phone"] = "Please enter a valid phone number"

        items = self._validate_items(payload, errors)

        shipping_method = collapse_whitespace(coerce_string(payload.get("shippingMethod"))).lower() or "standard"
        if shipping_method not in SHIPPING_METHODS:
            errors["shippingMethod"] = "Shipping method must be standard, express, or pickup"

        address = self._validate_address(payload, shipping_method != "pickup", errors)

        coupon_code = collapse_whitespace(coerce_string(payload.get("couponCode"))) or None
        if coupon_code and len(coupon_code) > MAX_COUPON_LENGTH:
            errors["couponCode"] = "Coupon code is too long"

        notes_raw = coerce_string(payload.get("notes") or payload.get("message"))
        notes = sanitize_text(notes_raw, MAX_NOTES_LENGTH) if notes_raw else None

        return _result(
            errors,
            {
                "name": name,
                "email": email,
                "phone": phone,
                "items": items,
                "shippingMethod": shipping_method,
                "address": address,
                "couponCode": coupon_code,
                "newCustomer": bool(payload.get("newCustomer")),
                "newsletterOptIn": bool(payload.get("newsletterOptIn")),
                "notes": notes or None,
            },
        )

    def _validate_items(self, payload: Dict[str, Any], errors: Dict[str, str]) -> List[Dict[str, Any]]:
        raw_items = payload.get("items")
        if raw_items is None:
            # single-product form: {"product": "tomato-5lb", "quantity": 2}
            product = payload.get("product") or payload.get("sku")
            raw_items = [{"sku": product, "quantity": payload.get("quantity")}] if product else []

        if not isinstance(raw_items, list):
            errors["items"] = "Items must be a list"
            return []
        if not raw_items:
            errors["items"] = "At least one item is required"
            return []
        if len(raw_items) > MAX_ITEMS:
            errors["items"] = f"No more than {MAX_ITEMS} items per order"
            return []

        items: List[Dict[str, Any]] = []
        for idx, raw in enumerate(raw_items):
            key = f"items[{idx}]"
            if not isinstance(raw, dict):
                errors[key] = "Invalid item"
                continue

            sku = collapse_whitespace(coerce_string(raw.get("sku")))
            if not sku:
                errors[f"{key}.sku"] = "Product is required"
            elif len(sku) > MAX_SKU_LENGTH:
                errors[f"{key}.sku"] = "Product is too long"

            qty_raw = coerce_number(raw.get("quantity"))
            quantity = None
            if qty_raw is None:
                errors[f"{key}.quantity"] = "Quantity is required"
            else:
                q = int(round(qty_raw))
                if q < 1:
                    errors[f"{key}.quantity"] = "Quantity must be at least 1"
                elif q > MAX_QUANTITY:
                    errors[f"{key}.quantity"] = f"Quantity must be {MAX_QUANTITY} or less"
                else:
                    quantity = q

            if sku and quantity is not None:
                items.append({"sku": sku, "quantity": quantity})
        return items

    def _validate_address(
        self, payload: Dict[str, Any], required: bool, errors: Dict[str, str]
    ) -> Optional[Dict[str, Any]]:
        # nested "address" object or flat fields on the order itself
        source = payload.get("address") if isinstance(payload.get("address"), dict) else payload

        line1 = collapse_whitespace(coerce_string(source.get("line1") or source.get("addressLine1")))
        line2 = collapse_whitespace(coerce_string(source.get("line2") or source.get("addressLine2")))
        city = collapse_whitespace(coerce_string(source.get("city")))
        state = collapse_whitespace(coerce_string(source.get("state") or source.get("region")))
        postal_code = collapse_whitespace(
            coerce_string(source.get("postalCode") or source.get("zip") or source.get("zipcode"))
        )

        if required:
            if not line1:
                errors["address_line1"] = "Street address is required"
            if not city:
                errors["address_city"] = "City is required"
            if not postal_code:
                errors["address_postalCode"] = "Postal code is required"
        elif not any((line1, line2, city, state, postal_code)):
            return None

        if postal_code and not is_valid_postal_code(postal_code):
            errors["address_postalCode"] = "Please enter a valid postal code"

        return {
            "line1": line1,
            "line2": line2 or None,
            "city": city,
            "state": state or None,
            "postalCode": postal_code,
        }
