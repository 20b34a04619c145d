"""
Quotation follow-up model.

WHAT: A sales activity (call, email, visit...) logged against a pending
quotation, with an optional date for the next touch point.

WHY: Pending quotations go cold without regular contact. Follow-ups give
the sales team a due list and a per-quotation activity history.

HOW: Rows are created by sales activity and only ever mutated to mark them
completed (completion clears next_followup_date).
"""

import enum
from datetime import date, datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    Boolean,
    ForeignKey,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped

from quotedesk.models.base import Base, utcnow

if TYPE_CHECKING:
    from quotedesk.models.quotation import Quotation


class FollowUpType(str, enum.Enum):
    """Channel used for the follow-up."""

    CALL = "call"
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    MEETING = "meeting"
    SITE_VISIT = "site_visit"
    OTHER = "other"


class FollowUp(Base):
    """
    Follow-up on a quotation.

    Attributes:
        quotation_id: Quotation followed up
        followup_type: Channel used
        followup_date: Date the follow-up is due / happened
        note: What was discussed (required)
        next_followup_date: When to follow up again
        is_completed / completed_at: Completion marker
        created_by: Actor who logged it
    """

    __tablename__ = "quotation_followups"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)

    quotation_id: Mapped[int] = Column(
        Integer,
        ForeignKey("quotations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    followup_type: Mapped[FollowUpType] = Column(
        SQLEnum(
            FollowUpType,
            name="followuptype",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
        default=FollowUpType.CALL,
    )
    followup_date: Mapped[date] = Column(Date, nullable=False, default=date.today, index=True)
    note: Mapped[str] = Column(Text, nullable=False)
    next_followup_date: Mapped[Optional[date]] = Column(Date, nullable=True)

    is_completed: Mapped[bool] = Column(Boolean, nullable=False, default=False, index=True)
    completed_at: Mapped[Optional[datetime]] = Column(DateTime, nullable=True)

    created_by: Mapped[Optional[str]] = Column(String(255), nullable=True)
    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=utcnow)

    quotation: Mapped["Quotation"] = relationship("Quotation", back_populates="followups")

    def __repr__(self) -> str:
        return (
            f"<FollowUp(id={self.id}, quotation_id={self.quotation_id}, "
            f"type={self.followup_type}, completed={self.is_completed})>"
        )
