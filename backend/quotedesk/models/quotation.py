"""
Quotation model for customer price offers.

WHAT: SQLAlchemy model representing a quotation: customer snapshot, line
items, cached totals, version marker and validity window.

WHY: Quotations are the central sales document:
1. Capture an immutable snapshot of the customer at creation time
2. Hold the line items that drive pricing
3. Cache the computed totals for listing and reporting
4. Carry a version marker that moves on every content change
5. Expire after their validity window and get re-issued, never deleted

HOW: Uses SQLAlchemy 2.0 with:
- JSON for line items and the customer snapshot (JSONB on PostgreSQL)
- Numeric(12, 2) totals, persisted as a cache of the pricing computation
- A self-reference to the quotation a re-issued record came from
- A unique (reissued_from_id, reissue_key) pair making reissue retry-safe
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Dict, Any, TYPE_CHECKING
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    ForeignKey,
    JSON,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped

from quotedesk.models.base import Base, Money, utcnow

if TYPE_CHECKING:
    from quotedesk.models.customer import Customer
    from quotedesk.models.followup import FollowUp
    from quotedesk.models.quotation_version import QuotationVersion
    from quotedesk.models.quotation_decision import QuotationDecision


INITIAL_VERSION = "0.1"


class QuotationStatus(str, Enum):
    """
    Quotation sales workflow status.

    WHY: Tracks the quotation through the sales process:
    - DRAFT: Being prepared, not yet shared with the customer
    - PENDING: Shared with the customer, awaiting a decision
    - WON: Customer accepted (terminal)
    - LOST: Customer declined (terminal, reason recorded)
    """

    DRAFT = "draft"
    PENDING = "pending"
    WON = "won"
    LOST = "lost"

    @property
    def is_terminal(self) -> bool:
        return self in (QuotationStatus.WON, QuotationStatus.LOST)


class Quotation(Base):
    """
    Customer quotation model.

    WHAT: Represents one issued (or draft) quotation.

    WHY: Validity state (valid/due/overdue/expired) is intentionally NOT a
    column: it is derived from quotation_date + validity_days on every read
    so it can never go stale.

    Attributes:
        id: Primary key
        quotation_no: Human-readable number (QT/<fy>/<initials>/<nnn>)
        customer_id / customer_location_id / customer_contact_id: References
        customer_snapshot: Denormalized copy of customer data at creation
        salesperson_name: Who owns the quotation
        quotation_date: Issue date, start of the validity window
        validity_days: Length of the validity window
        payment_terms / terms / notes: Free text
        status: Sales workflow status
        version: Decimal version string ("0.1", "1.3", ...)
        items: Normalized line items
        subtotal / discount_total / tax_total / grand_total: Cached totals
        last_followup_at: Last time a follow-up was logged
        reissued_from_id: Quotation this one was re-issued from
        reissue_key: Caller idempotency token for the reissue
    """

    __tablename__ = "quotations"
    __table_args__ = (
        UniqueConstraint("reissued_from_id", "reissue_key", name="uq_quotations_reissue_key"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)

    quotation_no: Mapped[Optional[str]] = Column(
        String(64),
        unique=True,
        nullable=True,
        index=True,
        comment="Human-readable quotation number",
    )

    # Customer references + snapshot
    customer_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    customer_location_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("customer_locations.id", ondelete="SET NULL"),
        nullable=True,
    )
    customer_contact_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("customer_contacts.id", ondelete="SET NULL"),
        nullable=True,
    )
    # WHY: Copied once at creation; later edits to the customer record
    # must not rewrite quotations already sent out.
    customer_snapshot: Mapped[Optional[Dict[str, Any]]] = Column(
        JSON,
        nullable=True,
        comment="Immutable customer/location/contact copy",
    )
    salesperson_name: Mapped[Optional[str]] = Column(String(255), nullable=True)

    # Validity
    quotation_date: Mapped[date] = Column(
        Date,
        nullable=False,
        default=date.today,
        comment="Issue date; start of the validity window",
    )
    validity_days: Mapped[int] = Column(
        Integer,
        nullable=False,
        default=30,
        comment="Validity window in days",
    )

    # Commercial text
    payment_terms: Mapped[Optional[str]] = Column(String(255), nullable=True)
    terms: Mapped[Optional[str]] = Column(Text, nullable=True)
    notes: Mapped[Optional[str]] = Column(Text, nullable=True)

    status: Mapped[QuotationStatus] = Column(
        SQLEnum(
            QuotationStatus,
            name="quotationstatus",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
        default=QuotationStatus.DRAFT,
        index=True,
    )

    version: Mapped[str] = Column(
        String(20),
        nullable=False,
        default=INITIAL_VERSION,
        comment="Decimal version string, bumped by 0.1 per content change",
    )

    # Line items
    # Format: [{"product_id", "description", "uom", "qty", "unit_price",
    #           "discount_percent", "tax_rate", "gross", "discount_amount",
    #           "taxable_amount", "tax_amount", "line_total"}]
    items: Mapped[Optional[List[Dict[str, Any]]]] = Column(
        JSON,
        nullable=True,
        default=list,
    )

    # Cached totals (source of truth is the pricing computation over items)
    subtotal: Mapped[Decimal] = Column(Money, nullable=False, default=0)
    discount_total: Mapped[Decimal] = Column(Money, nullable=False, default=0)
    tax_total: Mapped[Decimal] = Column(Money, nullable=False, default=0)
    grand_total: Mapped[Decimal] = Column(Money, nullable=False, default=0)

    last_followup_at: Mapped[Optional[datetime]] = Column(DateTime, nullable=True)

    # Reissue lineage
    reissued_from_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("quotations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    reissue_key: Mapped[Optional[str]] = Column(String(128), nullable=True)

    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = Column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    customer: Mapped[Optional["Customer"]] = relationship("Customer")
    reissued_from: Mapped[Optional["Quotation"]] = relationship(
        "Quotation",
        remote_side=[id],
        foreign_keys=[reissued_from_id],
    )
    versions: Mapped[List["QuotationVersion"]] = relationship(
        "QuotationVersion",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationVersion.id",
    )
    followups: Mapped[List["FollowUp"]] = relationship(
        "FollowUp",
        back_populates="quotation",
        cascade="all, delete-orphan",
    )
    decisions: Mapped[List["QuotationDecision"]] = relationship(
        "QuotationDecision",
        back_populates="quotation",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Quotation(id={self.id}, no={self.quotation_no}, "
            f"status={self.status}, version={self.version})>"
        )

    @property
    def is_closed(self) -> bool:
        """True once the quotation is won or lost."""
        return QuotationStatus(self.status).is_terminal
