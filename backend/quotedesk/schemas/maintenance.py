"""
Pydantic schemas for maintenance endpoints.
"""

from pydantic import BaseModel, Field


class RecomputeResponse(BaseModel):
    """Outcome of a totals recompute run."""

    checked: int = Field(..., description="Quotations examined")
    corrected: int = Field(..., description="Quotations whose totals were rewritten")
    skipped: int = Field(..., description="Quotations that could not be processed")
