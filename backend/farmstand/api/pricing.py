from fastapi import APIRouter
from typing import Any, Dict, List
import logging

from farmstand.models.pricing import PricingInput
from farmstand.services.pricing import calculate_pricing, get_pricing_engine

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/catalog")
async def list_catalog() -> List[Dict[str, Any]]:
    """SKUs the order form can offer, in display order."""
    return [sku.model_dump(mode="json", by_alias=True) for sku in get_pricing_engine().catalog.list_catalog()]


@router.post("/pricing/quote")
async def quote(req: PricingInput) -> Dict[str, Any]:
    """Price a cart without placing an order (live totals on the order form)."""
    result = calculate_pricing(req)
    logger.debug("Quote items=%d total=%s coupon=%s", len(result.items), result.total, req.coupon_code)
    return result.to_dict()
