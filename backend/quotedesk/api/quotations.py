"""
Quotation API endpoints.

WHAT: RESTful API for the quotation lifecycle.

WHY: Quotations move through a fixed lifecycle:
1. Created as a draft at version 0.1
2. Revised in place while open and within validity (each content change
   bumps the version and needs a comment)
3. Closed as won or lost
4. Re-issued as a new record once expired

HOW: FastAPI router over QuotationService. The acting user comes from the
X-Actor header; all writes of a request share one transaction.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status

from quotedesk.core.actor import Actor
from quotedesk.core.deps import get_actor, get_quotation_service
from quotedesk.models.quotation import Quotation, QuotationStatus as QuotationStatusModel
from quotedesk.models.quotation_decision import QuotationDecision
from quotedesk.schemas.quotation import (
    DecisionRequest,
    DecisionResponse,
    NextNumberResponse,
    QuotationCreate,
    QuotationListResponse,
    QuotationResponse,
    QuotationStatus,
    QuotationUpdate,
    QuotationVersionListResponse,
    QuotationVersionResponse,
    ReissueRequest,
    ReissueResponse,
    SaveResponse,
    ValidityState,
)
from quotedesk.services.quotation_service import QuotationService, VersionView


router = APIRouter(prefix="/quotations", tags=["quotations"])


def _quotation_to_response(quotation: Quotation, service: QuotationService) -> QuotationResponse:
    """
    Convert a Quotation model to QuotationResponse.

    WHY: Validity fields are derived at read time with the service's clock
    and policy, so every endpoint reports the same state.
    """
    validity = service.validity(quotation)
    return QuotationResponse(
        id=quotation.id,
        quotation_no=quotation.quotation_no,
        customer_id=quotation.customer_id,
        customer_location_id=quotation.customer_location_id,
        customer_contact_id=quotation.customer_contact_id,
        customer_snapshot=quotation.customer_snapshot,
        salesperson_name=quotation.salesperson_name,
        quotation_date=quotation.quotation_date,
        validity_days=quotation.validity_days,
        expiry_date=validity.expiry_date,
        remaining_days=validity.remaining_days,
        validity_state=ValidityState(validity.state.value),
        payment_terms=quotation.payment_terms,
        terms=quotation.terms,
        notes=quotation.notes,
        status=QuotationStatus(QuotationStatusModel(quotation.status).value),
        version=quotation.version,
        items=quotation.items or [],
        subtotal=float(quotation.subtotal),
        discount_total=float(quotation.discount_total),
        tax_total=float(quotation.tax_total),
        grand_total=float(quotation.grand_total),
        last_followup_at=quotation.last_followup_at,
        reissued_from_id=quotation.reissued_from_id,
        created_at=quotation.created_at,
        updated_at=quotation.updated_at,
    )


def _version_to_response(view: VersionView) -> QuotationVersionResponse:
    return QuotationVersionResponse(
        version_label=view.version_label,
        items=view.items,
        subtotal=float(view.subtotal),
        discount_total=float(view.discount_total),
        tax_total=float(view.tax_total),
        grand_total=float(view.grand_total),
        comment=view.comment,
        changed_by=view.changed_by,
        next_version=view.next_version,
        created_at=view.created_at,
        is_current=view.is_current,
    )


def _decision_to_response(decision: QuotationDecision) -> DecisionResponse:
    return DecisionResponse(
        id=decision.id,
        quotation_id=decision.quotation_id,
        decision=decision.decision.value,
        comment=decision.comment,
        decided_by=decision.decided_by,
        decided_at=decision.decided_at,
    )


# ============================================================================
# Quotation CRUD Endpoints
# ============================================================================


@router.post(
    "",
    response_model=QuotationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create quotation",
    description="Create a draft quotation at version 0.1",
)
async def create_quotation(
    data: QuotationCreate,
    actor: Actor = Depends(get_actor),
    service: QuotationService = Depends(get_quotation_service),
) -> QuotationResponse:
    """
    Create a quotation.

    Raises:
        ValidationError (400): Invalid line items
        CustomerNotFoundError (404): Unknown or mismatched customer references
    """
    quotation = await service.create_quotation(data, actor)
    return _quotation_to_response(quotation, service)


@router.get(
    "",
    response_model=QuotationListResponse,
    summary="List quotations",
    description="Get paginated list of quotations, newest first",
)
async def list_quotations(
    skip: int = Query(default=0, ge=0, description="Number of items to skip"),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum items to return"),
    status_filter: Optional[QuotationStatus] = Query(
        default=None,
        alias="status",
        description="Filter by status",
    ),
    customer_id: Optional[int] = Query(default=None, gt=0, description="Filter by customer"),
    service: QuotationService = Depends(get_quotation_service),
) -> QuotationListResponse:
    quotations, total = await service.list_quotations(
        status=QuotationStatusModel(status_filter.value) if status_filter else None,
        customer_id=customer_id,
        skip=skip,
        limit=limit,
    )
    return QuotationListResponse(
        items=[_quotation_to_response(q, service) for q in quotations],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/next-number",
    response_model=NextNumberResponse,
    summary="Preview next quotation number",
)
async def next_quotation_number(
    salesperson_name: Optional[str] = Query(default=None, max_length=255),
    actor: Actor = Depends(get_actor),
    service: QuotationService = Depends(get_quotation_service),
) -> NextNumberResponse:
    """
    Preview the number the next quotation would get.

    WHY: The form shows the number before saving. The number is assigned
    again on create, so the preview is advisory.
    """
    name = (salesperson_name or "").strip() or actor.name
    return NextNumberResponse(quotation_no=await service.next_quotation_number(name))


@router.get(
    "/{quotation_id}",
    response_model=QuotationResponse,
    summary="Get quotation",
)
async def get_quotation(
    quotation_id: int,
    service: QuotationService = Depends(get_quotation_service),
) -> QuotationResponse:
    quotation = await service.get_quotation(quotation_id)
    return _quotation_to_response(quotation, service)


@router.put(
    "/{quotation_id}",
    response_model=SaveResponse,
    summary="Save quotation",
    description="Save changes; content changes bump the version and need a comment",
)
async def save_quotation(
    quotation_id: int,
    data: QuotationUpdate,
    actor: Actor = Depends(get_actor),
    service: QuotationService = Depends(get_quotation_service),
) -> SaveResponse:
    """
    Save a quotation.

    Raises:
        CommentRequiredError (422): Version changes and no comment given
        QuotationExpiredError (409): Quotation has expired
        QuotationLockedError (409): Quotation is won or lost
        ConcurrentModificationError (409): Someone else saved first
    """
    result = await service.save_quotation(quotation_id, data, actor)
    return SaveResponse(
        quotation=_quotation_to_response(result.quotation, service),
        changed=result.changed,
        previous_version=result.previous_version,
    )


# ============================================================================
# Reissue
# ============================================================================


@router.post(
    "/{quotation_id}/reissue",
    response_model=ReissueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Re-issue expired quotation",
    description="Create a new draft from an expired quotation; the source is left untouched",
)
async def reissue_quotation(
    quotation_id: int,
    response: Response,
    data: Optional[ReissueRequest] = None,
    actor: Actor = Depends(get_actor),
    service: QuotationService = Depends(get_quotation_service),
) -> ReissueResponse:
    """
    Re-issue an expired quotation.

    Returns 201 when a new quotation was created, 200 when an earlier call
    with the same idempotency key is replayed.

    Raises:
        ReissueNotAllowedError (409): Source is not expired, or won/lost
    """
    data = data or ReissueRequest()
    result = await service.reissue(
        quotation_id,
        actor,
        validity_days=data.validity_days,
        idempotency_key=data.idempotency_key,
    )
    if not result.created:
        response.status_code = status.HTTP_200_OK

    quotation = result.quotation
    return ReissueResponse(
        id=quotation.id,
        quotation_no=quotation.quotation_no,
        reissued_from_id=quotation.reissued_from_id,
        validity_state=ValidityState(service.validity(quotation).state.value),
        created=result.created,
    )


# ============================================================================
# Version History
# ============================================================================


@router.get(
    "/{quotation_id}/versions",
    response_model=QuotationVersionListResponse,
    summary="List quotation versions",
)
async def list_versions(
    quotation_id: int,
    service: QuotationService = Depends(get_quotation_service),
) -> QuotationVersionListResponse:
    quotation, versions = await service.list_versions(quotation_id)
    return QuotationVersionListResponse(
        quotation_id=quotation.id,
        current_version=quotation.version,
        versions=[_version_to_response(v) for v in versions],
    )


@router.get(
    "/{quotation_id}/versions/{version_label}",
    response_model=QuotationVersionResponse,
    summary="Get quotation version",
)
async def get_version(
    quotation_id: int,
    version_label: str,
    service: QuotationService = Depends(get_quotation_service),
) -> QuotationVersionResponse:
    return _version_to_response(await service.get_version(quotation_id, version_label))


# ============================================================================
# Decisions
# ============================================================================


@router.post(
    "/{quotation_id}/won",
    response_model=DecisionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Mark quotation won",
)
async def mark_won(
    quotation_id: int,
    data: Optional[DecisionRequest] = None,
    actor: Actor = Depends(get_actor),
    service: QuotationService = Depends(get_quotation_service),
) -> DecisionResponse:
    comment = data.comment if data else None
    return _decision_to_response(await service.mark_won(quotation_id, actor, comment))


@router.post(
    "/{quotation_id}/lost",
    response_model=DecisionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Mark quotation lost",
    description="Close the quotation as lost; a reason is mandatory",
)
async def mark_lost(
    quotation_id: int,
    data: Optional[DecisionRequest] = None,
    actor: Actor = Depends(get_actor),
    service: QuotationService = Depends(get_quotation_service),
) -> DecisionResponse:
    """
    Raises:
        CommentRequiredError (422): No reason given
    """
    comment = data.comment if data else None
    return _decision_to_response(await service.mark_lost(quotation_id, actor, comment))


@router.get(
    "/{quotation_id}/decisions",
    response_model=list[DecisionResponse],
    summary="List quotation decisions",
)
async def list_decisions(
    quotation_id: int,
    service: QuotationService = Depends(get_quotation_service),
) -> list[DecisionResponse]:
    return [_decision_to_response(d) for d in await service.list_decisions(quotation_id)]
