"""
Pydantic schemas for follow-up endpoints.

WHAT: Request/response schemas for logging and completing follow-ups.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class FollowUpType(str, Enum):
    """
    Follow-up channel.

    WHY: Mirrors the SQLAlchemy enum for API consistency.
    """

    CALL = "call"
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    MEETING = "meeting"
    SITE_VISIT = "site_visit"
    OTHER = "other"


class FollowUpCreate(BaseModel):
    """Follow-up logging request."""

    followup_type: FollowUpType = Field(default=FollowUpType.CALL)
    followup_date: Optional[date] = Field(default=None, description="Defaults to today")
    note: str = Field(..., min_length=1, max_length=5000)
    next_followup_date: Optional[date] = None

    @field_validator("note")
    @classmethod
    def note_not_blank(cls, v: str) -> str:
        """A note of only whitespace says nothing."""
        if not v.strip():
            raise ValueError("note must not be blank")
        return v.strip()


class FollowUpResponse(BaseModel):
    id: int
    quotation_id: int
    followup_type: FollowUpType
    followup_date: date
    note: str
    next_followup_date: Optional[date] = None
    is_completed: bool
    completed_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
