"""
Quotation Decision Data Access Object (DAO).

WHAT: Database operations for won/lost decisions.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.dao.base import BaseDAO
from quotedesk.models.quotation_decision import QuotationDecision


class QuotationDecisionDAO(BaseDAO[QuotationDecision]):
    """Data Access Object for quotation decisions."""

    def __init__(self, session: AsyncSession):
        super().__init__(QuotationDecision, session)

    async def get_for_quotation(self, quotation_id: int) -> Optional[QuotationDecision]:
        """
        Get the decision recorded for a quotation.

        Args:
            quotation_id: Quotation ID

        Returns:
            Decision or None if the quotation is still open
        """
        result = await self._execute(
            select(QuotationDecision).where(QuotationDecision.quotation_id == quotation_id)
        )
        return result.scalar_one_or_none()
