"""
Pydantic schemas for quotation endpoints.

WHAT: Request/response schemas for the quotation lifecycle API.

WHY: Schemas define the API contract:
1. Validate the shape of incoming requests
2. Document the API for OpenAPI/Swagger
3. Render derived values (validity state, expiry) next to stored ones

HOW: Uses Pydantic v2. Numeric line item fields are accepted loosely
(numbers or numeric strings) because range checks and the
missing-means-zero rule belong to the pricing module, which reports them
with the offending field name.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, Any, Union
from pydantic import BaseModel, Field, field_validator


LooseNumber = Optional[Union[float, str]]


class QuotationStatus(str, Enum):
    """
    Quotation workflow status.

    WHY: Mirrors the SQLAlchemy enum for API consistency.
    """

    DRAFT = "draft"
    PENDING = "pending"
    WON = "won"
    LOST = "lost"


class EditableStatus(str, Enum):
    """Statuses a save may set; won/lost go through the decision endpoints."""

    DRAFT = "draft"
    PENDING = "pending"


class ValidityState(str, Enum):
    """Derived validity state of a quotation."""

    VALID = "valid"
    DUE = "due"
    OVERDUE = "overdue"
    EXPIRED = "expired"


class LineItemIn(BaseModel):
    """
    Line item as entered on the quotation form.

    Missing or non-numeric numbers count as 0; out-of-range numbers are
    rejected by the pricing module.
    """

    product_id: Optional[int] = Field(default=None, description="Catalog product (None for custom lines)")
    description: Optional[str] = Field(default=None, max_length=2000)
    uom: Optional[str] = Field(default=None, max_length=20, description="Unit of measure")
    qty: LooseNumber = Field(default=None, description="Quantity (>= 0)")
    unit_price: LooseNumber = Field(default=None, description="Unit price (>= 0)")
    discount_percent: LooseNumber = Field(default=None, description="Discount % (0-100)")
    tax_rate: LooseNumber = Field(default=None, description="Tax rate % (>= 0)")

    class Config:
        json_schema_extra = {
            "example": {
                "product_id": 12,
                "description": "Ball valve 2in",
                "uom": "NOS",
                "qty": 2,
                "unit_price": 100,
                "discount_percent": 10,
                "tax_rate": 18,
            }
        }


class QuotationCreate(BaseModel):
    """
    Quotation creation request.

    WHY: Either customer references (from which the snapshot is built) or an
    explicit customer_snapshot may be given. New quotations start at
    version 0.1.
    """

    customer_id: Optional[int] = Field(default=None, gt=0)
    customer_location_id: Optional[int] = Field(default=None, gt=0)
    customer_contact_id: Optional[int] = Field(default=None, gt=0)
    customer_snapshot: Optional[dict[str, Any]] = Field(
        default=None,
        description="Explicit snapshot, used when no customer_id is given",
    )
    salesperson_name: Optional[str] = Field(default=None, max_length=255)
    quotation_date: Optional[date] = Field(default=None, description="Defaults to today")
    validity_days: Optional[int] = Field(
        default=None,
        ge=0,
        le=3650,
        description="Defaults to DEFAULT_VALIDITY_DAYS",
    )
    payment_terms: Optional[str] = Field(default=None, max_length=255)
    terms: Optional[str] = Field(default=None, max_length=20000)
    notes: Optional[str] = Field(default=None, max_length=20000)
    status: EditableStatus = Field(default=EditableStatus.DRAFT)
    items: list[LineItemIn] = Field(default_factory=list)


class QuotationUpdate(BaseModel):
    """
    Quotation save request.

    WHAT: Partial update. Only the fields present in the request are
    compared against the stored quotation.

    WHY: A save that changes content bumps the version and must carry a
    comment. `expected_version` lets the editor assert the version it
    loaded; a mismatch is rejected as a concurrent modification.
    """

    salesperson_name: Optional[str] = Field(default=None, max_length=255)
    quotation_date: Optional[date] = None
    validity_days: Optional[int] = Field(default=None, ge=0, le=3650)
    payment_terms: Optional[str] = Field(default=None, max_length=255)
    terms: Optional[str] = Field(default=None, max_length=20000)
    notes: Optional[str] = Field(default=None, max_length=20000)
    status: Optional[EditableStatus] = None
    items: Optional[list[LineItemIn]] = None

    comment: Optional[str] = Field(
        default=None,
        max_length=2000,
        description="Why the quotation changed (required when the version moves)",
    )
    expected_version: Optional[str] = Field(
        default=None,
        max_length=20,
        description="Version the editor loaded",
    )

    class Config:
        json_schema_extra = {
            "example": {
                "items": [{"qty": 3, "unit_price": 100, "discount_percent": 10, "tax_rate": 18}],
                "comment": "Customer asked for one more unit",
                "expected_version": "0.1",
            }
        }


class ReissueRequest(BaseModel):
    """Reissue request; validity defaults to the source quotation's window."""

    validity_days: Optional[int] = Field(default=None, gt=0, le=3650)
    idempotency_key: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=128,
        description="Retry token; repeating a call with the same key returns the same quotation",
    )


class DecisionRequest(BaseModel):
    """Won/lost decision request."""

    comment: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v: Optional[str]) -> Optional[str]:
        """Blank comments count as missing."""
        if v is None:
            return None
        return v.strip() or None


class QuotationResponse(BaseModel):
    """
    Quotation response.

    WHY: validity_state, expiry_date and remaining_days are derived at read
    time, never stored.
    """

    id: int
    quotation_no: Optional[str] = None
    customer_id: Optional[int] = None
    customer_location_id: Optional[int] = None
    customer_contact_id: Optional[int] = None
    customer_snapshot: Optional[dict[str, Any]] = None
    salesperson_name: Optional[str] = None
    quotation_date: date
    validity_days: int
    expiry_date: date
    remaining_days: int
    validity_state: ValidityState
    payment_terms: Optional[str] = None
    terms: Optional[str] = None
    notes: Optional[str] = None
    status: QuotationStatus
    version: str
    items: list[dict[str, Any]] = Field(default_factory=list)
    subtotal: float
    discount_total: float
    tax_total: float
    grand_total: float
    last_followup_at: Optional[datetime] = None
    reissued_from_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuotationListResponse(BaseModel):
    """
    Paginated quotation list response.

    WHY: Provides pagination metadata alongside items.
    """

    items: list[QuotationResponse] = Field(..., description="List of quotations")
    total: int = Field(..., description="Total quotations matching filters")
    skip: int = Field(..., description="Number of items skipped")
    limit: int = Field(..., description="Maximum items per page")


class SaveResponse(BaseModel):
    """Result of a save: the quotation plus whether the version moved."""

    quotation: QuotationResponse
    changed: bool = Field(..., description="False for a no-op save")
    previous_version: str


class ReissueResponse(BaseModel):
    """Result of a reissue."""

    id: int = Field(..., description="New quotation ID")
    quotation_no: Optional[str] = None
    reissued_from_id: int
    validity_state: ValidityState
    created: bool = Field(..., description="False when an earlier call with the same key is returned")


class NextNumberResponse(BaseModel):
    """Preview of the next quotation number for the caller."""

    quotation_no: str


class QuotationVersionResponse(BaseModel):
    """One entry of a quotation's version history (or its current state)."""

    version_label: str
    items: list[dict[str, Any]] = Field(default_factory=list)
    subtotal: float
    discount_total: float
    tax_total: float
    grand_total: float
    comment: Optional[str] = None
    changed_by: Optional[str] = None
    next_version: Optional[str] = None
    created_at: Optional[datetime] = None
    is_current: bool = False


class QuotationVersionListResponse(BaseModel):
    """Version history of a quotation, newest first."""

    quotation_id: int
    current_version: str
    versions: list[QuotationVersionResponse]


class DecisionResponse(BaseModel):
    """Recorded won/lost decision."""

    id: int
    quotation_id: int
    decision: str
    comment: Optional[str] = None
    decided_by: Optional[str] = None
    decided_at: datetime

    class Config:
        from_attributes = True
