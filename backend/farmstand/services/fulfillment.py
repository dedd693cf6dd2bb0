import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

PICKUP_WINDOW = "9:00 AM - 12:00 PM"
PICKUP_LOCATION = os.getenv("FARM_PICKUP_LOCATION", "On-farm pickup, 123 Country Lane, Yourtown")
PICKUP_WEEKDAY = 5  # Saturday

# business days until delivery by shipping method
DELIVERY_BUSINESS_DAYS = {"standard": 3, "express": 1}

ORDER_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def new_order_id(now: Optional[datetime] = None, length: int = 6) -> str:
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(ORDER_ID_ALPHABET) for _ in range(length))
    return f"ORD-{now:%Y%m%d}-{suffix}"


def add_business_days(start: datetime, days: int) -> datetime:
    current = start
    added = 0
    while added < days:
        current += timedelta(days=1)
        if current.weekday() < 5:
            added += 1
    return current


def next_weekday(start: datetime, weekday: int) -> datetime:
    """Next occurrence of weekday strictly after start (a week out if start falls on it)."""
    delta = (weekday - start.weekday()) % 7 or 7
    return start + timedelta(days=delta)


def build_fulfillment(
    method: str,
    address: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    if method == "pickup":
        return {
            "method": "pickup",
            "pickup": {
                "date": next_weekday(now, PICKUP_WEEKDAY).isoformat(),
                "window": PICKUP_WINDOW,
                "location": PICKUP_LOCATION,
            },
        }

    days = DELIVERY_BUSINESS_DAYS.get(method, DELIVERY_BUSINESS_DAYS["standard"])
    return {
        "method": method,
        "address": address,
        "estimatedDeliveryDate": add_business_days(now, days).isoformat(),
    }
