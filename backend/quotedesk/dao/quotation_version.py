"""
Quotation Version Data Access Object (DAO).

WHAT: Database operations for QuotationVersion snapshots.

WHY: Version history is append-only. This DAO only creates snapshots and
reads them back; there is no update path.
"""

from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.dao.base import BaseDAO
from quotedesk.models.quotation import Quotation
from quotedesk.models.quotation_version import QuotationVersion


class QuotationVersionDAO(BaseDAO[QuotationVersion]):
    """Data Access Object for quotation version snapshots."""

    def __init__(self, session: AsyncSession):
        """
        Initialize QuotationVersionDAO.

        Args:
            session: Async database session
        """
        super().__init__(QuotationVersion, session)

    async def create_snapshot(
        self,
        quotation: Quotation,
        comment: str,
        changed_by: Optional[str],
        next_version: str,
    ) -> QuotationVersion:
        """
        Snapshot the content a quotation had before a save.

        WHAT: Copies label, items and totals from the in-memory quotation.

        WHY: The save flow writes the new content with a statement-level
        UPDATE that does not touch the loaded instance, so the instance
        still holds the outgoing version when this is called.

        Args:
            quotation: Quotation instance in its pre-save state
            comment: Change comment that justified the new version
            changed_by: Actor performing the save
            next_version: Version the quotation moved to

        Returns:
            Created snapshot
        """
        return await self.create(
            quotation_id=quotation.id,
            version_label=quotation.version,
            items=quotation.items,
            subtotal=quotation.subtotal,
            discount_total=quotation.discount_total,
            tax_total=quotation.tax_total,
            grand_total=quotation.grand_total,
            comment=comment,
            changed_by=changed_by,
            next_version=next_version,
        )

    async def get_for_quotation(self, quotation_id: int) -> List[QuotationVersion]:
        """
        Get all snapshots of a quotation, newest first.

        Args:
            quotation_id: Quotation ID

        Returns:
            List of snapshots
        """
        result = await self._execute(
            select(QuotationVersion)
            .where(QuotationVersion.quotation_id == quotation_id)
            .order_by(QuotationVersion.id.desc())
        )
        return list(result.scalars().all())

    async def get_by_label(self, quotation_id: int, version_label: str) -> Optional[QuotationVersion]:
        """
        Get one snapshot by its version label.

        Args:
            quotation_id: Quotation ID
            version_label: Version label, e.g. "0.2"

        Returns:
            Snapshot or None
        """
        result = await self._execute(
            select(QuotationVersion).where(
                QuotationVersion.quotation_id == quotation_id,
                QuotationVersion.version_label == version_label,
            )
        )
        return result.scalar_one_or_none()

    async def count_for_quotation(self, quotation_id: int) -> int:
        """Number of historical versions stored for a quotation."""
        result = await self._execute(
            select(func.count(QuotationVersion.id)).where(
                QuotationVersion.quotation_id == quotation_id
            )
        )
        return result.scalar() or 0
