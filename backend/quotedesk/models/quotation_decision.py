"""
Quotation decision model (won / lost).

WHY: A won or lost quotation is closed for good. The decision row records
who closed it, when, and for a loss the reason the customer gave, which
feeds the sales review.
"""

import enum
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship, Mapped

from quotedesk.models.base import Base, utcnow

if TYPE_CHECKING:
    from quotedesk.models.quotation import Quotation


class DecisionType(str, enum.Enum):
    """Final outcome of a quotation."""

    WON = "won"
    LOST = "lost"


class QuotationDecision(Base):
    """
    Won/lost decision on a quotation.

    One row per quotation: a second decision is rejected by the service
    layer before it reaches the database.
    """

    __tablename__ = "quotation_decisions"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)

    quotation_id: Mapped[int] = Column(
        Integer,
        ForeignKey("quotations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    decision: Mapped[DecisionType] = Column(
        SQLEnum(
            DecisionType,
            name="decisiontype",
            native_enum=False,
            length=10,
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
    )
    # WHY: Mandatory for LOST, optional for WON
    comment: Mapped[Optional[str]] = Column(Text, nullable=True)
    decided_by: Mapped[Optional[str]] = Column(String(255), nullable=True)
    decided_at: Mapped[datetime] = Column(DateTime, nullable=False, default=utcnow)

    quotation: Mapped["Quotation"] = relationship("Quotation", back_populates="decisions")

    def __repr__(self) -> str:
        return f"<QuotationDecision(quotation_id={self.quotation_id}, decision={self.decision})>"
