"""
Customer Data Access Objects (DAO).

WHAT: Database operations for customers, locations and contacts.
"""

from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quotedesk.dao.base import BaseDAO
from quotedesk.models.customer import Customer, CustomerLocation, CustomerContact


class CustomerDAO(BaseDAO[Customer]):
    """Data Access Object for Customer model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Customer, session)

    async def get_with_locations(self, customer_id: int) -> Optional[Customer]:
        """
        Get a customer with its locations and their contacts eagerly loaded.

        WHY: Relationships cannot lazy-load under AsyncSession, and the
        snapshot builder and the customer detail view need the whole tree.

        Args:
            customer_id: Customer ID

        Returns:
            Customer or None
        """
        result = await self._execute(
            select(Customer)
            .where(Customer.id == customer_id)
            .options(selectinload(Customer.locations).selectinload(CustomerLocation.contacts))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def search(self, name: str, skip: int = 0, limit: int = 100) -> List[Customer]:
        """
        Find customers whose company name contains a fragment.

        Args:
            name: Case-insensitive name fragment
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            Matching customers ordered by name
        """
        result = await self._execute(
            select(Customer)
            .where(Customer.company_name.ilike(f"%{name}%"))
            .order_by(Customer.company_name)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_matching(self, name: str) -> int:
        """Number of customers whose company name contains a fragment."""
        result = await self._execute(
            select(func.count(Customer.id)).where(Customer.company_name.ilike(f"%{name}%"))
        )
        return result.scalar() or 0


class CustomerLocationDAO(BaseDAO[CustomerLocation]):
    """Data Access Object for CustomerLocation model."""

    def __init__(self, session: AsyncSession):
        super().__init__(CustomerLocation, session)

    async def get_for_customer(self, customer_id: int) -> List[CustomerLocation]:
        """Locations of a customer in creation order."""
        return await self.get_all(customer_id=customer_id)


class CustomerContactDAO(BaseDAO[CustomerContact]):
    """Data Access Object for CustomerContact model."""

    def __init__(self, session: AsyncSession):
        super().__init__(CustomerContact, session)

    async def get_for_location(self, location_id: int) -> List[CustomerContact]:
        """Contacts at a location in creation order."""
        return await self.get_all(location_id=location_id)
