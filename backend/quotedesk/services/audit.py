"""
Audit logging service.

WHAT: Service layer for creating audit log entries with proper context.

WHY: Every quotation state change (create, revise, re-issue, win, lose,
follow-up, recompute correction) leaves an immutable trail. This service
provides:
- A simplified interface for logging quotation events
- Automatic context extraction from request middleware
- Logging that never breaks the business operation it describes

HOW: Uses the AuditLogDAO for persistence and the RequestContext
middleware for automatic IP/user-agent/request-id capture.
"""

import logging
from typing import Optional, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.dao.audit_log import AuditLogDAO
from quotedesk.models.audit_log import AuditLog, AuditAction
from quotedesk.middleware.request_context import get_request_context


# Logger for audit service errors (not audit events themselves)
logger = logging.getLogger(__name__)


class AuditService:
    """
    Service for creating audit log entries.

    Example:
        audit = AuditService(db)
        await audit.log_quotation_event(
            AuditAction.QUOTATION_UPDATED, quotation.id, actor.name,
            changes={"version": {"before": "0.1", "after": "0.2"}},
        )
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize audit service with database session.

        Args:
            session: Async database session for audit log persistence
        """
        self.dao = AuditLogDAO(session)

    async def log_event(
        self,
        action: AuditAction,
        resource_type: str,
        actor: Optional[str] = None,
        resource_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """
        Log a generic audit event.

        Args:
            action: Type of event (from AuditAction enum)
            resource_type: Category of affected resource
            actor: Who performed the action
            resource_id: Specific resource ID (optional)
            changes: Before/after values for mutations
            extra_data: Additional context

        Returns:
            Created AuditLog or None if logging failed

        Note:
            This method never raises exceptions to prevent audit
            logging from breaking business operations. Errors are
            logged to the application logger instead.
        """
        ctx = get_request_context()
        try:
            return await self.dao.create(
                action=action,
                resource_type=resource_type,
                actor=actor,
                resource_id=resource_id,
                changes=changes,
                extra_data=extra_data,
                ip_address=ctx.ip_address if ctx else None,
                user_agent=ctx.user_agent if ctx else None,
                request_id=ctx.request_id if ctx else None,
            )
        except Exception as e:
            logger.error(f"Failed to create audit log for {action.value}: {e}", exc_info=True)
            return None

    async def log_quotation_event(
        self,
        action: AuditAction,
        quotation_id: int,
        actor: Optional[str],
        changes: Optional[Dict[str, Any]] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """Log an event against a quotation."""
        return await self.log_event(
            action=action,
            resource_type="quotation",
            actor=actor,
            resource_id=quotation_id,
            changes=changes,
            extra_data=extra_data,
        )
