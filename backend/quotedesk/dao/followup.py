"""
Follow-up Data Access Object (DAO).

WHAT: Database operations for quotation follow-ups.

WHY: Follow-ups feed two views: the activity history of one quotation and
the sales team's list of follow-ups that are due. Both queries live here.
"""

from datetime import date, datetime
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.dao.base import BaseDAO
from quotedesk.models.followup import FollowUp


class FollowUpDAO(BaseDAO[FollowUp]):
    """
    Data Access Object for FollowUp model.

    HOW: Extends BaseDAO with per-quotation and due-list queries.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize FollowUpDAO.

        Args:
            session: Async database session
        """
        super().__init__(FollowUp, session)

    async def get_for_quotation(self, quotation_id: int) -> List[FollowUp]:
        """
        Get all follow-ups of a quotation, most recent first.

        Args:
            quotation_id: Quotation ID

        Returns:
            List of follow-ups
        """
        result = await self._execute(
            select(FollowUp)
            .where(FollowUp.quotation_id == quotation_id)
            .order_by(FollowUp.followup_date.desc(), FollowUp.id.desc())
        )
        return list(result.scalars().all())

    async def get_due(self, on_or_before: date, skip: int = 0, limit: int = 100) -> List[FollowUp]:
        """
        Get open follow-ups due on or before a date, oldest first.

        Args:
            on_or_before: Cut-off date (usually today)
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of incomplete follow-ups
        """
        result = await self._execute(
            select(FollowUp)
            .where(
                FollowUp.is_completed.is_(False),
                FollowUp.followup_date <= on_or_before,
            )
            .order_by(FollowUp.followup_date, FollowUp.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def mark_completed(self, followup: FollowUp, completed_at: datetime) -> FollowUp:
        """
        Mark a follow-up completed.

        WHAT: Sets is_completed, stamps completed_at and clears
        next_followup_date (a completed follow-up schedules nothing).

        Args:
            followup: Follow-up to complete
            completed_at: Completion timestamp

        Returns:
            Updated follow-up
        """
        followup.is_completed = True
        followup.completed_at = completed_at
        followup.next_followup_date = None
        await self._flush(followup)
        return followup
