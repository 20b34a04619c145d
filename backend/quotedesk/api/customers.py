"""
Customer API endpoints.

WHAT: Maintenance of customers, their locations and contacts, the
reference data quotation snapshots are built from.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from quotedesk.core.actor import Actor
from quotedesk.core.deps import get_actor, get_customer_service
from quotedesk.schemas.customer import (
    CustomerContactCreate,
    CustomerContactResponse,
    CustomerCreate,
    CustomerListResponse,
    CustomerLocationCreate,
    CustomerLocationResponse,
    CustomerResponse,
    CustomerSummaryResponse,
)
from quotedesk.services.customer_service import CustomerService


router = APIRouter(tags=["customers"])


@router.post(
    "/customers",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create customer",
)
async def create_customer(
    data: CustomerCreate,
    actor: Actor = Depends(get_actor),
    service: CustomerService = Depends(get_customer_service),
) -> CustomerResponse:
    customer = await service.create_customer(
        data.company_name,
        actor,
        locations=[location.model_dump() for location in data.locations],
    )
    return CustomerResponse.model_validate(customer)


@router.get(
    "/customers",
    response_model=CustomerListResponse,
    summary="List customers",
)
async def list_customers(
    search: Optional[str] = Query(default=None, max_length=255, description="Name fragment"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    service: CustomerService = Depends(get_customer_service),
) -> CustomerListResponse:
    customers, total = await service.list_customers(search=search, skip=skip, limit=limit)
    return CustomerListResponse(
        items=[CustomerSummaryResponse.model_validate(c) for c in customers],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/customers/{customer_id}",
    response_model=CustomerResponse,
    summary="Get customer",
)
async def get_customer(
    customer_id: int,
    service: CustomerService = Depends(get_customer_service),
) -> CustomerResponse:
    return CustomerResponse.model_validate(await service.get_customer(customer_id))


@router.post(
    "/customers/{customer_id}/locations",
    response_model=CustomerLocationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add customer location",
)
async def add_location(
    customer_id: int,
    data: CustomerLocationCreate,
    service: CustomerService = Depends(get_customer_service),
) -> CustomerLocationResponse:
    location = await service.add_location(customer_id, **data.model_dump(exclude={"contacts"}))
    for contact in data.contacts:
        await service.add_contact(location.id, **contact.model_dump())
    return CustomerLocationResponse.model_validate(location)


@router.post(
    "/customer-locations/{location_id}/contacts",
    response_model=CustomerContactResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add location contact",
)
async def add_contact(
    location_id: int,
    data: CustomerContactCreate,
    service: CustomerService = Depends(get_customer_service),
) -> CustomerContactResponse:
    contact = await service.add_contact(location_id, **data.model_dump())
    return CustomerContactResponse.model_validate(contact)
