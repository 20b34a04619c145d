"""
FastAPI dependencies shared by the route modules.

WHY: Dependencies keep request plumbing (who is acting, which services a
route needs) out of the handlers, and let tests swap the database session
in one place (get_db).

Actor identity is explicit: the X-Actor header is resolved into an Actor
value that routes hand to services. Nothing reads a global "current user".
"""

from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.core.actor import Actor
from quotedesk.core.exceptions import ValidationError
from quotedesk.db.session import get_db
from quotedesk.services.customer_service import CustomerService
from quotedesk.services.followup_service import FollowUpService
from quotedesk.services.quotation_service import QuotationService


async def get_actor(x_actor: Optional[str] = Header(default=None)) -> Actor:
    """
    Resolve the X-Actor request header.

    Args:
        x_actor: Display name of the person making the request

    Returns:
        Actor (the system actor when the header is absent)

    Raises:
        ValidationError: If the header is blank or too long
    """
    if x_actor is None:
        return Actor.system()

    name = x_actor.strip()
    if not name or len(name) > 255:
        raise ValidationError("X-Actor header must be 1-255 characters", field="X-Actor")
    return Actor(name=name)


def get_quotation_service(db: AsyncSession = Depends(get_db)) -> QuotationService:
    """Quotation service bound to the request session."""
    return QuotationService(db)


def get_followup_service(db: AsyncSession = Depends(get_db)) -> FollowUpService:
    """Follow-up service bound to the request session."""
    return FollowUpService(db)


def get_customer_service(db: AsyncSession = Depends(get_db)) -> CustomerService:
    """Customer service bound to the request session."""
    return CustomerService(db)
