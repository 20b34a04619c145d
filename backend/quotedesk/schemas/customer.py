"""
Pydantic schemas for customer endpoints.

WHAT: Request/response schemas for customers, locations and contacts.

WHY: Customer records are reference data. Quotations copy what they need
into their own snapshot, so these schemas only serve the customer
maintenance API.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CustomerContactCreate(BaseModel):
    """Contact at a customer location."""

    contact_name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)


class CustomerLocationCreate(BaseModel):
    """Customer location (site/branch), optionally with its contacts."""

    location_name: str = Field(..., min_length=1, max_length=255)
    gstin: Optional[str] = Field(default=None, max_length=20, description="GST registration number")
    address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    contacts: list[CustomerContactCreate] = Field(default_factory=list)


class CustomerCreate(BaseModel):
    """
    Customer creation request.

    Example:
        {"company_name": "Acme Pumps", "locations": [{"location_name": "Pune",
         "contacts": [{"contact_name": "R. Shah"}]}]}
    """

    company_name: str = Field(..., min_length=1, max_length=255)
    locations: list[CustomerLocationCreate] = Field(default_factory=list)


class CustomerContactResponse(BaseModel):
    id: int
    location_id: int
    contact_name: str
    phone: Optional[str] = None
    email: Optional[str] = None

    class Config:
        from_attributes = True


class CustomerLocationResponse(BaseModel):
    id: int
    customer_id: int
    location_name: str
    gstin: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    class Config:
        from_attributes = True


class CustomerLocationDetailResponse(CustomerLocationResponse):
    """Location with its contacts."""

    contacts: list[CustomerContactResponse] = Field(default_factory=list)


class CustomerSummaryResponse(BaseModel):
    """Customer as shown in listings."""

    id: int
    company_name: str
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerResponse(CustomerSummaryResponse):
    """Customer with locations and contacts."""

    locations: list[CustomerLocationDetailResponse] = Field(default_factory=list)


class CustomerListResponse(BaseModel):
    """Paginated customer list."""

    items: list[CustomerSummaryResponse]
    total: int
    skip: int
    limit: int
