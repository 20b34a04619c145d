"""
Pydantic schemas for the pricing preview endpoints.

WHY: The quotation form previews line and quotation totals while the user
types, before anything is saved. The preview runs the same pricing module
the save path uses, so what the user sees is what gets stored.
"""

from typing import Any
from pydantic import BaseModel, Field

from quotedesk.schemas.quotation import LineItemIn


class LineValuationResponse(BaseModel):
    """Per-line figures, rounded to currency precision."""

    qty: float
    unit_price: float
    discount_percent: float
    tax_rate: float
    gross: float
    discount_amount: float
    taxable_amount: float
    tax_amount: float
    line_total: float


class TotalsRequest(BaseModel):
    items: list[LineItemIn] = Field(default_factory=list)


class TotalsResponse(BaseModel):
    """Quotation totals plus the normalized items they were computed from."""

    subtotal: float
    discount_total: float
    tax_total: float
    grand_total: float
    items: list[dict[str, Any]] = Field(default_factory=list)
