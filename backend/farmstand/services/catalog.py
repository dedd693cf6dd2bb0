import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import Field, TypeAdapter, ValidationError, model_validator

from farmstand.models.base import CamelModel
from farmstand.services.money import JsonDecimal

logger = logging.getLogger(__name__)

DEFAULT_MIN_PER_ORDER = 1
DEFAULT_MAX_PER_ORDER = 999


class CatalogSku(CamelModel):
    sku: str = Field(min_length=1)
    name: str
    unit_label: str
    unit_weight: JsonDecimal = Field(gt=0)  # lb
    unit_price: JsonDecimal = Field(gt=0)  # USD
    min_per_order: Optional[int] = None
    max_per_order: Optional[int] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "CatalogSku":
        if (
            self.min_per_order is not None
            and self.max_per_order is not None
            and self.min_per_order > self.max_per_order
        ):
            raise ValueError(
                f"min_per_order ({self.min_per_order}) exceeds max_per_order ({self.max_per_order}) for {self.sku}"
            )
        return self

    @property
    def quantity_bounds(self) -> tuple:
        low = self.min_per_order if self.min_per_order is not None else DEFAULT_MIN_PER_ORDER
        high = self.max_per_order if self.max_per_order is not None else DEFAULT_MAX_PER_ORDER
        return low, high


# Seasonal direct-from-farm organic tomatoes.
DEFAULT_SKUS = (
    CatalogSku(
        sku="tomato-1lb",
        name="Organic Tomatoes - 1 lb",
        unit_label="1 lb bag",
        unit_weight="1",
        unit_price="4.50",
        max_per_order=40,
        description="Perfect for a salad or two, field-ripened, same-week harvest.",
    ),
    CatalogSku(
        sku="tomato-5lb",
        name="Organic Tomatoes - 5 lb",
        unit_label="5 lb box",
        unit_weight="5",
        unit_price="20.00",
        max_per_order=30,
        description="Great value for families and weekly meal prep.",
    ),
    CatalogSku(
        sku="tomato-10lb",
        name="Organic Tomatoes - 10 lb",
        unit_label="10 lb box",
        unit_weight="10",
        unit_price="36.00",
        max_per_order=20,
        description="Best for batch cooking, canning, or sharing.",
    ),
    CatalogSku(
        sku="tomato-20lb",
        name="Organic Tomatoes - 20 lb",
        unit_label="20 lb crate",
        unit_weight="20",
        unit_price="64.00",
        max_per_order=10,
        description="Chef and canner favorite, biggest savings per pound.",
    ),
)


class Catalog:
    """Read-only table of purchasable SKUs, kept in definition order."""

    def __init__(self, skus: Optional[Iterable[CatalogSku]] = None):
        entries = tuple(DEFAULT_SKUS if skus is None else skus)
        by_sku = {}
        for entry in entries:
            if entry.sku in by_sku:
                raise ValueError(f"Duplicate SKU in catalog: {entry.sku}")
            by_sku[entry.sku] = entry
        self._skus = entries
        self._by_sku = by_sku

    def find_sku(self, sku: str) -> Optional[CatalogSku]:
        return self._by_sku.get(sku)

    def list_catalog(self) -> List[CatalogSku]:
        return list(self._skus)

    def is_valid_sku(self, sku: str) -> bool:
        return sku in self._by_sku

    def __len__(self) -> int:
        return len(self._skus)


_sku_list = TypeAdapter(List[CatalogSku])


def load_catalog(path: str) -> Catalog:
    """Build a catalog from a JSON list of SKU objects (camelCase or snake_case keys)."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        skus = _sku_list.validate_python(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise RuntimeError(f"Could not load catalog from {path}: {e}") from e
    logger.info("Loaded %d catalog SKUs from %s", len(skus), path)
    return Catalog(skus)
