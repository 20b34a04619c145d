"""
Audit Log Data Access Object (DAO).

WHAT: Data access layer for audit log operations.

WHY: Quotation history must be trustworthy. This DAO provides:
- Tamper-proof logging (immutable records)
- Query methods for "what happened to this quotation"

HOW: Standalone DAO whose update/delete always raise to enforce immutability.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.models.audit_log import AuditLog, AuditAction
from quotedesk.core.exceptions import AuditLogImmutableError


class AuditLogDAO:
    """
    Data Access Object for audit log operations.

    WHAT: Provides methods for creating and querying audit logs.

    HOW: Uses SQLAlchemy async session for all operations.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize AuditLogDAO with database session.

        Args:
            session: Async database session
        """
        self.session = session

    async def create(
        self,
        action: AuditAction,
        resource_type: str,
        actor: Optional[str] = None,
        resource_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
        extra_data: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> AuditLog:
        """
        Create a new audit log entry.

        Args:
            action: Type of event (from AuditAction enum)
            resource_type: Category of affected resource
            actor: Who performed the action
            resource_id: Specific resource ID (nullable)
            changes: Before/after values for mutations
            extra_data: Additional context
            ip_address: Client IP address
            user_agent: Client browser/application info
            request_id: Request correlation ID

        Returns:
            The created AuditLog entry
        """
        log = AuditLog(
            actor=actor,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            changes=changes,
            extra_data=extra_data,
            ip_address=ip_address,
            user_agent=user_agent,
            request_id=request_id,
        )
        self.session.add(log)
        await self.session.flush()
        await self.session.refresh(log)
        return log

    async def get_by_id(self, log_id: int) -> Optional[AuditLog]:
        """
        Retrieve a single audit log by ID.

        Args:
            log_id: Primary key of the audit log

        Returns:
            The AuditLog if found, None otherwise
        """
        result = await self.session.execute(select(AuditLog).where(AuditLog.id == log_id))
        return result.scalar_one_or_none()

    async def get_for_resource(
        self,
        resource_type: str,
        resource_id: int,
        skip: int = 0,
        limit: int = 100,
    ) -> List[AuditLog]:
        """
        Retrieve the audit history of one resource, oldest first.

        WHY: Answering "who changed this quotation and when" is the main
        use of the audit trail.

        Args:
            resource_type: Resource category (e.g. "quotation")
            resource_id: Resource ID
            skip: Pagination offset
            limit: Maximum records to return

        Returns:
            List of AuditLog entries for the resource
        """
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.resource_type == resource_type)
            .where(AuditLog.resource_id == resource_id)
            .order_by(AuditLog.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_action(
        self,
        action: AuditAction,
        skip: int = 0,
        limit: int = 100,
    ) -> List[AuditLog]:
        """
        Retrieve audit logs by action type, newest first.

        Args:
            action: Action type to filter by
            skip: Pagination offset
            limit: Maximum records to return

        Returns:
            List of AuditLog entries matching the action
        """
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.action == action)
            .order_by(AuditLog.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update(self, log_id: int, **kwargs: Any) -> None:
        """
        Attempt to update an audit log (BLOCKED).

        Raises:
            AuditLogImmutableError: Always raised - updates not allowed
        """
        raise AuditLogImmutableError("Audit logs are immutable and cannot be updated.")

    async def delete(self, log_id: int) -> None:
        """
        Attempt to delete an audit log (BLOCKED).

        Raises:
            AuditLogImmutableError: Always raised - deletions not allowed
        """
        raise AuditLogImmutableError("Audit logs cannot be deleted.")
