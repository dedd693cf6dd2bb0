from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from sqlalchemy.exc import SQLAlchemyError
import logging

from farmstand.db.session import get_session
from farmstand.models.pricing import PricingInput
from farmstand.services.fulfillment import build_fulfillment, new_order_id
from farmstand.services.newsletter import subscribe
from farmstand.services.pricing import calculate_pricing
from farmstand.services.validation import Validator
from farmstand.services.workflow import WorkflowClient

logger = logging.getLogger(__name__)
router = APIRouter()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _notify(payload: dict) -> None:
    WorkflowClient().trigger(payload)


@router.post("/orders")
async def create_order(request: Request, background_tasks: BackgroundTasks):
    """Validate an order, price it, and hand it to fulfillment. Orders are not stored here."""
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse({"error": "Invalid JSON body"}, status_code=400)

    validation = Validator().validate_order(payload)
    if not validation["ok"]:
        logger.warning("Rejected order fields=%s", sorted(validation["errors"]))
        return JSONResponse({"error": "Validation failed", "details": validation["errors"]}, status_code=400)
    data = validation["data"]

    now = _now()
    pricing = calculate_pricing(
        PricingInput(
            items=data["items"],
            shipping_method=data["shippingMethod"],
            coupon_code=data["couponCode"],
            new_customer=data["newCustomer"],
        ),
        now=now,
    )
    if not pricing.items:
        logger.warning("Rejected order with no valid items skus=%s", [i["sku"] for i in data["items"]])
        return JSONResponse(
            {"error": "Validation failed", "details": {"items": "No valid items in order"}},
            status_code=400,
        )

    order_id = new_order_id(now)
    body = {
        "success": True,
        "orderId": order_id,
        "receivedAt": now.isoformat(),
        "customer": {
            "name": data["name"],
            "email": data["email"],
            "phone": data["phone"],
            "newsletterOptIn": data["newsletterOptIn"],
        },
        "pricing": pricing.to_dict(),
        "fulfillment": build_fulfillment(data["shippingMethod"], data["address"], now),
        "notes": data["notes"],
    }

    if data["newsletterOptIn"]:
        session = get_session()
        try:
            subscribe(session, data["email"], name=data["name"], source="order")
        except SQLAlchemyError:
            # the order still goes through; the signup can be retried from the footer form
            logger.exception("Newsletter opt-in failed for order_id=%s", order_id)
        finally:
            session.close()

    background_tasks.add_task(_notify, body)
    logger.info(
        "Accepted order order_id=%s items=%d total=%s shipping=%s",
        order_id,
        len(pricing.items),
        pricing.total,
        pricing.shipping.method,
    )
    return JSONResponse(body, status_code=201, background=background_tasks)
