"""
Follow-up Service.

WHAT: Logging, listing and completing follow-ups on quotations.

WHY: Follow-ups are only meaningful while the customer is deciding, so
they are accepted for pending quotations only. Logging one stamps the
quotation's last_followup_at so listings can show how recently a
customer was contacted.
"""

import logging
from datetime import date, datetime
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.core.actor import Actor
from quotedesk.core.exceptions import (
    FollowUpNotAllowedError,
    FollowUpNotFoundError,
    QuotationNotFoundError,
    ValidationError,
)
from quotedesk.dao.followup import FollowUpDAO
from quotedesk.dao.quotation import QuotationDAO
from quotedesk.models.audit_log import AuditAction
from quotedesk.models.base import utcnow
from quotedesk.models.followup import FollowUp, FollowUpType
from quotedesk.models.quotation import QuotationStatus
from quotedesk.services.audit import AuditService


logger = logging.getLogger(__name__)


class FollowUpService:
    """Service for quotation follow-ups."""

    def __init__(self, session: AsyncSession, clock: Optional[Callable[[], date]] = None):
        """
        Initialize FollowUpService.

        Args:
            session: Async database session
            clock: Returns "today" (default date.today)
        """
        self.dao = FollowUpDAO(session)
        self.quotation_dao = QuotationDAO(session)
        self.audit = AuditService(session)
        self._clock = clock or date.today

    async def create_followup(
        self,
        quotation_id: int,
        note: str,
        actor: Actor,
        followup_type: FollowUpType = FollowUpType.CALL,
        followup_date: Optional[date] = None,
        next_followup_date: Optional[date] = None,
    ) -> FollowUp:
        """
        Log a follow-up on a pending quotation.

        Args:
            quotation_id: Quotation followed up
            note: What was discussed (required)
            actor: Who logs the follow-up
            followup_type: Channel used
            followup_date: Date of the follow-up (default today)
            next_followup_date: When to follow up again

        Returns:
            Created follow-up

        Raises:
            QuotationNotFoundError: Unknown quotation
            FollowUpNotAllowedError: Quotation is not pending
            ValidationError: Blank note
        """
        quotation = await self.quotation_dao.get_by_id(quotation_id)
        if quotation is None:
            raise QuotationNotFoundError(quotation_id=quotation_id)

        if quotation.status != QuotationStatus.PENDING:
            raise FollowUpNotAllowedError(
                quotation_id=quotation.id,
                status=QuotationStatus(quotation.status).value,
            )

        cleaned = (note or "").strip()
        if not cleaned:
            raise ValidationError("Follow-up note is required", field="note")

        followup = await self.dao.create(
            quotation_id=quotation.id,
            followup_type=followup_type,
            followup_date=followup_date or self._clock(),
            note=cleaned,
            next_followup_date=next_followup_date,
            is_completed=False,
            created_by=actor.name,
        )
        await self.quotation_dao.update(quotation.id, last_followup_at=utcnow())

        await self.audit.log_event(
            AuditAction.FOLLOWUP_CREATED,
            resource_type="followup",
            actor=actor.name,
            resource_id=followup.id,
            extra_data={"quotation_id": quotation.id, "type": followup_type.value},
        )
        logger.info(f"Follow-up {followup.id} logged on quotation {quotation.id} by {actor.name}")
        return followup

    async def list_for_quotation(self, quotation_id: int) -> List[FollowUp]:
        """
        Follow-ups of a quotation, most recent first.

        Raises:
            QuotationNotFoundError: Unknown quotation
        """
        if not await self.quotation_dao.exists(id=quotation_id):
            raise QuotationNotFoundError(quotation_id=quotation_id)
        return await self.dao.get_for_quotation(quotation_id)

    async def complete(self, followup_id: int, actor: Actor) -> FollowUp:
        """
        Mark a follow-up completed. Completing twice is a no-op.

        Raises:
            FollowUpNotFoundError: Unknown follow-up
        """
        followup = await self.dao.get_by_id(followup_id)
        if followup is None:
            raise FollowUpNotFoundError(followup_id=followup_id)

        if followup.is_completed:
            return followup

        completed_at: datetime = utcnow()
        await self.dao.mark_completed(followup, completed_at)
        await self.audit.log_event(
            AuditAction.FOLLOWUP_COMPLETED,
            resource_type="followup",
            actor=actor.name,
            resource_id=followup.id,
            extra_data={"quotation_id": followup.quotation_id},
        )
        return followup

    async def due(
        self,
        on_or_before: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[FollowUp]:
        """Open follow-ups dated on or before a day (default today)."""
        return await self.dao.get_due(on_or_before or self._clock(), skip=skip, limit=limit)
