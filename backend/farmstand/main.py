from fastapi import FastAPI
from sqlmodel import SQLModel
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from farmstand.api import newsletter, orders, pricing
from farmstand.db.session import get_engine
from farmstand.models import subscriber  # noqa: F401  registers the table
from farmstand.services.pricing import get_pricing_engine

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Farmstand")

# The marketing site is served from a different origin than the API.
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept"],
)

app.include_router(pricing.router, prefix="", tags=["pricing"])
app.include_router(orders.router, prefix="", tags=["orders"])
app.include_router(newsletter.router, prefix="", tags=["newsletter"])


@app.on_event("startup")
def on_startup():
    engine = get_engine()
    SQLModel.metadata.create_all(engine)
    # load catalog and coupon tables once; a bad CATALOG_FILE/COUPONS_FILE fails here
    get_pricing_engine()
    logger.info("Farmstand API started")


@app.get("/")
async def root():
    return {"status": "ok", "service": "farmstand"}
