"""
Customer service.

WHAT: Business logic for customer reference data and for building the
customer snapshot stored on quotations.

WHY: A quotation keeps a frozen copy of who it was addressed to. Building
that copy here, from a customer/location/contact triple that is checked
to belong together, keeps the rule in one place.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.core.actor import Actor
from quotedesk.core.exceptions import CustomerNotFoundError, ValidationError
from quotedesk.dao.customer import CustomerDAO, CustomerLocationDAO, CustomerContactDAO
from quotedesk.models.audit_log import AuditAction
from quotedesk.models.customer import Customer, CustomerLocation, CustomerContact
from quotedesk.services.audit import AuditService


logger = logging.getLogger(__name__)


def build_customer_snapshot(
    customer: Customer,
    location: Optional[CustomerLocation] = None,
    contact: Optional[CustomerContact] = None,
) -> Dict[str, Any]:
    """
    Flat, JSON-ready copy of the customer data a quotation is addressed to.

    Args:
        customer: Customer record
        location: Optional location of that customer
        contact: Optional contact at that location

    Returns:
        Snapshot dict
    """
    snapshot: Dict[str, Any] = {
        "customer_id": customer.id,
        "company_name": customer.company_name,
    }
    if location is not None:
        snapshot.update(
            {
                "location_id": location.id,
                "location_name": location.location_name,
                "gstin": location.gstin,
                "address": location.address,
                "city": location.city,
                "state": location.state,
            }
        )
    if contact is not None:
        snapshot.update(
            {
                "contact_id": contact.id,
                "contact_name": contact.contact_name,
                "phone": contact.phone,
                "email": contact.email,
            }
        )
    return snapshot


class CustomerService:
    """
    Service for customers, their locations and contacts.

    HOW: Coordinates the three customer DAOs and writes audit entries for
    new customers.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize CustomerService.

        Args:
            session: Async database session
        """
        self.session = session
        self.customer_dao = CustomerDAO(session)
        self.location_dao = CustomerLocationDAO(session)
        self.contact_dao = CustomerContactDAO(session)
        self.audit = AuditService(session)

    async def create_customer(
        self,
        company_name: str,
        actor: Actor,
        locations: Optional[List[Dict[str, Any]]] = None,
    ) -> Customer:
        """
        Create a customer, optionally with locations and their contacts.

        Args:
            company_name: Company name
            actor: Who creates the customer
            locations: Location dicts, each with an optional "contacts" list

        Returns:
            Customer with locations and contacts loaded
        """
        name = (company_name or "").strip()
        if not name:
            raise ValidationError("company_name must not be blank", field="company_name")

        customer = await self.customer_dao.create(company_name=name)
        for location_data in locations or []:
            location_data = dict(location_data)
            contacts = location_data.pop("contacts", None) or []
            location = await self.location_dao.create(customer_id=customer.id, **location_data)
            for contact_data in contacts:
                await self.contact_dao.create(location_id=location.id, **contact_data)

        await self.audit.log_event(
            AuditAction.CUSTOMER_CREATED,
            resource_type="customer",
            actor=actor.name,
            resource_id=customer.id,
            extra_data={"company_name": name},
        )
        logger.info(f"Customer {customer.id} ({name}) created by {actor.name}")
        return await self.get_customer(customer.id)

    async def get_customer(self, customer_id: int) -> Customer:
        """
        Get a customer with locations and contacts.

        Raises:
            CustomerNotFoundError: If the customer doesn't exist
        """
        customer = await self.customer_dao.get_with_locations(customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id=customer_id)
        return customer

    async def list_customers(
        self,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Customer], int]:
        """
        List customers, optionally filtered by a name fragment.

        Returns:
            Tuple of (customers, total count without pagination)
        """
        if search:
            customers = await self.customer_dao.search(search, skip=skip, limit=limit)
            return customers, await self.customer_dao.count_matching(search)
        customers = await self.customer_dao.get_all(skip=skip, limit=limit)
        return customers, await self.customer_dao.count()

    async def add_location(self, customer_id: int, **fields: Any) -> CustomerLocation:
        """
        Add a location to a customer.

        Raises:
            CustomerNotFoundError: If the customer doesn't exist
            ValidationError: If location_name is blank
        """
        if not await self.customer_dao.exists(id=customer_id):
            raise CustomerNotFoundError(customer_id=customer_id)
        if not (fields.get("location_name") or "").strip():
            raise ValidationError("location_name must not be blank", field="location_name")
        return await self.location_dao.create(customer_id=customer_id, **fields)

    async def add_contact(self, location_id: int, **fields: Any) -> CustomerContact:
        """
        Add a contact to a customer location.

        Raises:
            CustomerNotFoundError: If the location doesn't exist
            ValidationError: If contact_name is blank
        """
        if not await self.location_dao.exists(id=location_id):
            raise CustomerNotFoundError("Customer location not found", location_id=location_id)
        if not (fields.get("contact_name") or "").strip():
            raise ValidationError("contact_name must not be blank", field="contact_name")
        return await self.contact_dao.create(location_id=location_id, **fields)

    async def resolve_snapshot(
        self,
        customer_id: int,
        location_id: Optional[int] = None,
        contact_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Build the snapshot for a customer/location/contact triple.

        WHY: A contact from another customer's location would produce a
        snapshot that mixes two companies; the ownership chain is checked
        before anything is copied.

        Raises:
            CustomerNotFoundError: If any record is missing or they don't belong together
        """
        customer = await self.customer_dao.get_by_id(customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id=customer_id)

        location = None
        if location_id is not None:
            location = await self.location_dao.get_by_id(location_id)
            if location is None or location.customer_id != customer.id:
                raise CustomerNotFoundError(
                    "Customer location not found", customer_id=customer_id, location_id=location_id
                )

        contact = None
        if contact_id is not None:
            contact = await self.contact_dao.get_by_id(contact_id)
            if contact is None or location is None or contact.location_id != location.id:
                raise CustomerNotFoundError(
                    "Customer contact not found", location_id=location_id, contact_id=contact_id
                )

        return build_customer_snapshot(customer, location, contact)
