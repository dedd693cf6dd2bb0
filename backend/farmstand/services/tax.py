import os
from decimal import Decimal

from pydantic import Field

from farmstand.models.base import CamelModel
from farmstand.models.pricing import TaxBreakdown
from farmstand.services.money import D, JsonDecimal, round2

# Fresh produce is tax-exempt in most states; jurisdictions that tax it set TAX_RATE.
DEFAULT_TAX_RATE = D("0")
DEFAULT_TAX_LABEL = "Fresh produce (tax-exempt)"


class TaxPolicy(CamelModel):
    rate: JsonDecimal = Field(default=DEFAULT_TAX_RATE, ge=0, lt=1)
    label: str = DEFAULT_TAX_LABEL

    @classmethod
    def from_env(cls) -> "TaxPolicy":
        return cls(
            rate=os.getenv("TAX_RATE") or DEFAULT_TAX_RATE,
            label=os.getenv("TAX_LABEL") or DEFAULT_TAX_LABEL,
        )

    def compute(self, taxable: Decimal) -> TaxBreakdown:
        return TaxBreakdown(rate=self.rate, amount=round2(taxable * self.rate), label=self.label)
