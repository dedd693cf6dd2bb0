from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Annotated

from pydantic import PlainSerializer

D = Decimal

CENT = D("0.01")
ZERO = D("0.00")

# Decimal inside, plain JSON number on the wire.
JsonDecimal = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, floats and numeric strings to Decimal; anything else is 0."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        return D("0")
    try:
        result = D(str(value))
    except (InvalidOperation, ValueError):
        return D("0")
    if not result.is_finite():
        return D("0")
    return result


def round2(value: Any) -> Decimal:
    """Round a currency amount to cents, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def clamp(value, low, high):
    return max(low, min(high, value))


def format_amount(value: Any) -> str:
    """Render an amount the way customers read it: 8, 4.5, 0.30 stays 0.3."""
    q = to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    if q == q.to_integral_value():
        return str(int(q))
    return f"{q.normalize():f}"


def format_rate(value: Any) -> str:
    """Per-unit rates always show two decimals (0.30, 0.60)."""
    return f"{round2(value):.2f}"
