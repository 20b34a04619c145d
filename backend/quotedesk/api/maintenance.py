"""
Maintenance API endpoints.

WHAT: On-demand trigger for the totals recompute task.

WHY: After a pricing rule change or a data repair, operators re-derive the
cached totals without waiting for the scheduled run.

HOW: The recompute opens its own session per quotation, so it does not use
the request session.
"""

from fastapi import APIRouter, Depends

from quotedesk.schemas.maintenance import RecomputeResponse
from quotedesk.services.recompute_service import RecomputeService


router = APIRouter(prefix="/maintenance", tags=["maintenance"])


def get_recompute_service() -> RecomputeService:
    """Recompute service bound to the application's session factory."""
    return RecomputeService()


@router.post(
    "/recompute-totals",
    response_model=RecomputeResponse,
    summary="Recompute quotation totals",
    description="Re-derive every quotation's totals from its items and heal mismatches",
)
async def recompute_totals(
    service: RecomputeService = Depends(get_recompute_service),
) -> RecomputeResponse:
    report = await service.recompute_all()
    return RecomputeResponse(**report.to_dict())
