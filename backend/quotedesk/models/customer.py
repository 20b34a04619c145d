"""
Customer reference data.

WHAT: Customers, their site/billing locations and the contacts at each
location.

WHY: A quotation is addressed to one contact at one location of a
customer. These tables are the source the quotation's customer snapshot is
built from; quotations never read them again after creation.

HOW: Plain three-level hierarchy, Customer -> CustomerLocation ->
CustomerContact, with cascading deletes down the tree.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from quotedesk.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Customer(Base, PrimaryKeyMixin, TimestampMixin):
    """A customer company."""

    __tablename__ = "customers"

    company_name = Column(String(255), nullable=False, index=True)

    locations = relationship(
        "CustomerLocation",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="CustomerLocation.id",
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, company_name={self.company_name})>"


class CustomerLocation(Base, PrimaryKeyMixin, TimestampMixin):
    """
    A billing or site location of a customer.

    WHY: GST registration (gstin) is per location, so the tax identity on a
    quotation comes from the location, not the company.
    """

    __tablename__ = "customer_locations"

    customer_id = Column(
        Integer,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    location_name = Column(String(255), nullable=False)
    gstin = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)

    customer = relationship("Customer", back_populates="locations")
    contacts = relationship(
        "CustomerContact",
        back_populates="location",
        cascade="all, delete-orphan",
        order_by="CustomerContact.id",
    )

    def __repr__(self) -> str:
        return f"<CustomerLocation(id={self.id}, location_name={self.location_name})>"


class CustomerContact(Base, PrimaryKeyMixin, TimestampMixin):
    """A person at a customer location."""

    __tablename__ = "customer_contacts"

    location_id = Column(
        Integer,
        ForeignKey("customer_locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contact_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)

    location = relationship("CustomerLocation", back_populates="contacts")

    def __repr__(self) -> str:
        return f"<CustomerContact(id={self.id}, contact_name={self.contact_name})>"
