"""
Follow-up API endpoints.

WHAT: Logging follow-ups on pending quotations, completing them, and the
sales team's list of due follow-ups.

HOW: FastAPI router over FollowUpService. Routes live under both
/quotations/{id}/followups (per-quotation history) and /followups.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from quotedesk.core.actor import Actor
from quotedesk.core.deps import get_actor, get_followup_service
from quotedesk.models.followup import FollowUpType as FollowUpTypeModel
from quotedesk.schemas.followup import FollowUpCreate, FollowUpResponse
from quotedesk.services.followup_service import FollowUpService


router = APIRouter(tags=["followups"])


@router.post(
    "/quotations/{quotation_id}/followups",
    response_model=FollowUpResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log follow-up",
    description="Log a follow-up on a pending quotation",
)
async def create_followup(
    quotation_id: int,
    data: FollowUpCreate,
    actor: Actor = Depends(get_actor),
    service: FollowUpService = Depends(get_followup_service),
) -> FollowUpResponse:
    """
    Log a follow-up.

    Raises:
        FollowUpNotAllowedError (409): Quotation is not pending
    """
    followup = await service.create_followup(
        quotation_id,
        data.note,
        actor,
        followup_type=FollowUpTypeModel(data.followup_type.value),
        followup_date=data.followup_date,
        next_followup_date=data.next_followup_date,
    )
    return FollowUpResponse.model_validate(followup)


@router.get(
    "/quotations/{quotation_id}/followups",
    response_model=list[FollowUpResponse],
    summary="List quotation follow-ups",
)
async def list_followups(
    quotation_id: int,
    service: FollowUpService = Depends(get_followup_service),
) -> list[FollowUpResponse]:
    followups = await service.list_for_quotation(quotation_id)
    return [FollowUpResponse.model_validate(f) for f in followups]


@router.get(
    "/followups/due",
    response_model=list[FollowUpResponse],
    summary="List due follow-ups",
    description="Open follow-ups dated on or before a day (default today)",
)
async def list_due_followups(
    on_or_before: Optional[date] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    service: FollowUpService = Depends(get_followup_service),
) -> list[FollowUpResponse]:
    followups = await service.due(on_or_before, skip=skip, limit=limit)
    return [FollowUpResponse.model_validate(f) for f in followups]


@router.put(
    "/followups/{followup_id}/complete",
    response_model=FollowUpResponse,
    summary="Complete follow-up",
)
async def complete_followup(
    followup_id: int,
    actor: Actor = Depends(get_actor),
    service: FollowUpService = Depends(get_followup_service),
) -> FollowUpResponse:
    return FollowUpResponse.model_validate(await service.complete(followup_id, actor))
