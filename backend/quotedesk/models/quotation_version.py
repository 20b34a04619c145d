"""
Quotation version history model.

WHAT: Snapshot of a quotation's content as it was BEFORE a save that
moved its version forward.

WHY: The live quotation row only holds the current version. Sales needs to
see what was sent to the customer earlier and why it changed, so every
version bump first writes the outgoing state here together with the
mandatory change comment.

HOW: Append-only rows keyed by (quotation_id, version_label). Items and
totals are copied verbatim; nothing here is ever recomputed.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any, TYPE_CHECKING
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, Mapped

from quotedesk.models.base import Base, Money, utcnow

if TYPE_CHECKING:
    from quotedesk.models.quotation import Quotation


class QuotationVersion(Base):
    """
    Historical snapshot of one quotation version.

    Attributes:
        quotation_id: Owning quotation
        version_label: Version the snapshot represents (the pre-save version)
        items: Line items at that version
        subtotal / discount_total / tax_total / grand_total: Totals at that version
        comment: Why the quotation moved past this version (never blank)
        changed_by: Actor who performed the save
        next_version: Version the quotation moved to
    """

    __tablename__ = "quotation_versions"
    __table_args__ = (
        UniqueConstraint("quotation_id", "version_label", name="uq_quotation_versions_label"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)

    quotation_id: Mapped[int] = Column(
        Integer,
        ForeignKey("quotations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_label: Mapped[str] = Column(String(20), nullable=False)

    items: Mapped[Optional[List[Dict[str, Any]]]] = Column(JSON, nullable=True)
    subtotal: Mapped[Decimal] = Column(Money, nullable=False, default=0)
    discount_total: Mapped[Decimal] = Column(Money, nullable=False, default=0)
    tax_total: Mapped[Decimal] = Column(Money, nullable=False, default=0)
    grand_total: Mapped[Decimal] = Column(Money, nullable=False, default=0)

    comment: Mapped[str] = Column(Text, nullable=False)
    changed_by: Mapped[Optional[str]] = Column(String(255), nullable=True)
    next_version: Mapped[Optional[str]] = Column(String(20), nullable=True)

    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=utcnow)

    quotation: Mapped["Quotation"] = relationship("Quotation", back_populates="versions")

    def __repr__(self) -> str:
        return f"<QuotationVersion(quotation_id={self.quotation_id}, label={self.version_label})>"
