"""
Audit Log Model.

WHAT: SQLAlchemy model for storing quotation lifecycle events.

WHY: Quotations are commercial commitments. Sales managers need to know
who created, revised, re-issued or closed a quotation and when:
- Tamper-proof trail of every state change
- Before/after values for revisions (version, totals)
- Request context (IP address, user agent, request id) for tracing

HOW: Immutable append-only table with rich context fields.
Uses JSON for flexible storage of changes and metadata.
(PostgreSQL uses JSONB, SQLite uses JSON for compatibility)
"""

import enum
from sqlalchemy import Column, Integer, String, Enum, Text, JSON

from quotedesk.models.base import Base, TimestampMixin, PrimaryKeyMixin


class AuditAction(str, enum.Enum):
    """
    Enumeration of auditable actions.

    WHY: Using an enum ensures only valid, documented actions can be
    logged, making it easier to query and analyze audit data.
    """

    # Quotation lifecycle
    QUOTATION_CREATED = "QUOTATION_CREATED"
    QUOTATION_UPDATED = "QUOTATION_UPDATED"
    QUOTATION_REISSUED = "QUOTATION_REISSUED"
    QUOTATION_WON = "QUOTATION_WON"
    QUOTATION_LOST = "QUOTATION_LOST"

    # Sales activity
    FOLLOWUP_CREATED = "FOLLOWUP_CREATED"
    FOLLOWUP_COMPLETED = "FOLLOWUP_COMPLETED"

    # Reference data
    CUSTOMER_CREATED = "CUSTOMER_CREATED"

    # Maintenance
    TOTALS_RECOMPUTED = "TOTALS_RECOMPUTED"


class AuditLog(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Immutable audit log entry.

    WHAT: Records one business event with full context.

    WHY: Audit logs are:
    - Immutable: Cannot be updated or deleted
    - Complete: Include who, what, when, where context
    - Indexed: Optimized for "history of quotation X" queries

    Fields:
    - actor: Who performed the action (free-form actor name, "system" for jobs)
    - action: What type of event occurred (AuditAction enum)
    - resource_type: Category of affected resource (e.g., "quotation")
    - resource_id: Specific resource ID (nullable)
    - changes: Before/after values for mutations
    - extra_data: Additional context
    - ip_address / user_agent / request_id: Request context
    - created_at: Timestamp (from TimestampMixin)
    """

    __tablename__ = "audit_logs"

    actor = Column(String(255), nullable=True, index=True)

    # WHY: Indexed for fast filtering by action type
    action = Column(Enum(AuditAction, native_enum=False, length=40), nullable=False, index=True)

    resource_type = Column(String(100), nullable=False, index=True)
    resource_id = Column(Integer, nullable=True, index=True)

    # Example: {"version": {"before": "0.1", "after": "0.2"}}
    changes = Column(JSON, nullable=True)

    # NOTE: Named 'extra_data' because 'metadata' is reserved by SQLAlchemy
    extra_data = Column(JSON, nullable=True)

    ip_address = Column(String(45), nullable=True)  # IPv6 max length
    user_agent = Column(Text, nullable=True)
    request_id = Column(String(64), nullable=True, index=True)

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action.value}, "
            f"actor={self.actor}, resource_type={self.resource_type})>"
        )
