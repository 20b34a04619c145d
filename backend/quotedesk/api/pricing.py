"""
Pricing preview API endpoints.

WHAT: Stateless line and quotation total previews.

WHY: The quotation form shows totals as the user edits. Previewing through
the same pricing module the save path uses keeps the screen and the stored
totals identical.
"""

from fastapi import APIRouter

from quotedesk.schemas.pricing import LineValuationResponse, TotalsRequest, TotalsResponse
from quotedesk.schemas.quotation import LineItemIn
from quotedesk.services.pricing import compute_totals, value_line


router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post(
    "/line",
    response_model=LineValuationResponse,
    summary="Value one line item",
)
async def price_line(item: LineItemIn) -> LineValuationResponse:
    """
    Raises:
        ValidationError (400): Out-of-range quantity, price, discount or tax
    """
    valuation = value_line(item.model_dump())
    return LineValuationResponse(
        qty=float(valuation.qty),
        unit_price=float(valuation.unit_price),
        discount_percent=float(valuation.discount_percent),
        tax_rate=float(valuation.tax_rate),
        **{name: float(amount) for name, amount in valuation.rounded().items()},
    )


@router.post(
    "/totals",
    response_model=TotalsResponse,
    summary="Compute quotation totals",
)
async def price_totals(data: TotalsRequest) -> TotalsResponse:
    """
    Raises:
        ValidationError (400): Invalid line (details carry the line number)
    """
    totals = compute_totals([item.model_dump() for item in data.items])
    return TotalsResponse(
        subtotal=float(totals.subtotal),
        discount_total=float(totals.discount_total),
        tax_total=float(totals.tax_total),
        grand_total=float(totals.grand_total),
        items=totals.items,
    )
