"""
Quotation Data Access Object (DAO).

WHAT: Database operations for the Quotation model.

WHY: The DAO pattern:
1. Separates data access from business logic
2. Keeps the locking and compare-and-set queries in one place
3. Encapsulates the numbering and reissue lookups

HOW: Extends BaseDAO with quotation-specific queries:
- Filtered listing (status, customer)
- Row-locked reads for the reissue workflow
- Version-guarded writes for optimistic concurrency
- Idempotent reissue inserts keyed by (reissued_from_id, reissue_key)
"""

import logging
from typing import List, Optional, Any, Tuple
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.core.exceptions import PersistenceError
from quotedesk.dao.base import BaseDAO
from quotedesk.models.quotation import Quotation, QuotationStatus


logger = logging.getLogger(__name__)


class QuotationDAO(BaseDAO[Quotation]):
    """
    Data Access Object for Quotation model.

    WHAT: Provides CRUD and query operations for quotations.

    HOW: Extends BaseDAO with quotation-specific methods.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize QuotationDAO.

        Args:
            session: Async database session
        """
        super().__init__(Quotation, session)

    async def list_quotations(
        self,
        status: Optional[QuotationStatus] = None,
        customer_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Quotation]:
        """
        List quotations, newest first.

        Args:
            status: Optional status filter
            customer_id: Optional customer filter
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of quotations
        """
        query = select(Quotation)
        if status is not None:
            query = query.where(Quotation.status == status)
        if customer_id is not None:
            query = query.where(Quotation.customer_id == customer_id)
        query = query.order_by(Quotation.id.desc()).offset(skip).limit(limit)

        result = await self._execute(query)
        return list(result.scalars().all())

    async def get_ids(self) -> List[int]:
        """IDs of every quotation, oldest first."""
        result = await self._execute(select(Quotation.id).order_by(Quotation.id))
        return list(result.scalars().all())

    async def get_for_update(self, quotation_id: int) -> Optional[Quotation]:
        """
        Read a quotation and lock its row until the transaction ends.

        WHY: The reissue workflow checks the source's state and inserts the
        new record in one transaction; the lock keeps a concurrent save or
        decision from changing the source in between.

        Args:
            quotation_id: Quotation ID

        Returns:
            Locked quotation or None
        """
        result = await self._execute(
            select(Quotation).where(Quotation.id == quotation_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_latest_number(self, prefix: str) -> Optional[str]:
        """
        Get the most recently issued quotation number with a given prefix.

        Args:
            prefix: Number prefix, e.g. "QT/2526/AK/"

        Returns:
            Latest matching quotation number or None
        """
        result = await self._execute(
            select(Quotation.quotation_no)
            .where(Quotation.quotation_no.like(f"{prefix}%"))
            .order_by(Quotation.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_reissue_key(self, source_id: int, reissue_key: str) -> Optional[Quotation]:
        """
        Find the quotation created by an earlier reissue call with the same key.

        Args:
            source_id: Quotation the reissue started from
            reissue_key: Caller-supplied idempotency key

        Returns:
            Previously created quotation or None
        """
        result = await self._execute(
            select(Quotation).where(
                Quotation.reissued_from_id == source_id,
                Quotation.reissue_key == reissue_key,
            )
        )
        return result.scalar_one_or_none()

    async def get_reissues_of(self, source_id: int) -> List[Quotation]:
        """Quotations re-issued from the given quotation, oldest first."""
        result = await self._execute(
            select(Quotation)
            .where(Quotation.reissued_from_id == source_id)
            .order_by(Quotation.id)
        )
        return list(result.scalars().all())

    async def create_reissue(self, **kwargs: Any) -> Tuple[Quotation, bool]:
        """
        Insert a re-issued quotation, tolerating a concurrent duplicate.

        WHAT: Inserts inside a savepoint. If another transaction already
        created the row for the same (reissued_from_id, reissue_key), the
        savepoint is rolled back and that row is returned instead.

        Args:
            **kwargs: Field values for the new quotation

        Returns:
            Tuple of (quotation, created), created is False when a concurrent
            call with the same key already stored it

        Raises:
            PersistenceError: If the insert fails for any other reason
        """
        reissue_key = kwargs.get("reissue_key")
        try:
            async with self.session.begin_nested():
                instance = Quotation(**kwargs)
                self.session.add(instance)
                await self.session.flush()
        except IntegrityError as e:
            if reissue_key is None:
                raise PersistenceError(
                    "Could not store the re-issued quotation", operation="reissue"
                ) from e
            existing = await self.get_by_reissue_key(kwargs["reissued_from_id"], reissue_key)
            if existing is None:
                raise PersistenceError(
                    "Could not store the re-issued quotation", operation="reissue"
                ) from e
            logger.info(
                f"Reissue of quotation {kwargs['reissued_from_id']} with key "
                f"{reissue_key} already stored as {existing.id}"
            )
            return existing, False

        await self._flush(instance)
        return instance, True

    async def update_if_version(
        self,
        quotation_id: int,
        expected_version: str,
        **values: Any,
    ) -> bool:
        """
        Write quotation fields only if the stored version is still expected_version.

        WHY: Two editors saving from the same version would both compute
        the same next version. The compare-and-set makes the second write
        match zero rows instead of silently overwriting the first.

        Args:
            quotation_id: Quotation ID
            expected_version: Version the caller read
            **values: Fields to write

        Returns:
            True if the write happened, False if the version moved
        """
        return await self.update_where(
            quotation_id, {"version": expected_version}, **values
        )

    async def refresh(self, quotation: Quotation) -> Quotation:
        """Reload a quotation's columns after a statement-level update."""
        await self._flush(quotation)
        return quotation
