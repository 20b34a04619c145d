"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from quotedesk.models.base import Base, TimestampMixin, PrimaryKeyMixin, Money
from quotedesk.models.audit_log import AuditLog, AuditAction
from quotedesk.models.customer import Customer, CustomerLocation, CustomerContact
from quotedesk.models.quotation import Quotation, QuotationStatus, INITIAL_VERSION
from quotedesk.models.quotation_version import QuotationVersion
from quotedesk.models.quotation_decision import QuotationDecision, DecisionType
from quotedesk.models.followup import FollowUp, FollowUpType

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "Money",
    "AuditLog",
    "AuditAction",
    "Customer",
    "CustomerLocation",
    "CustomerContact",
    "Quotation",
    "QuotationStatus",
    "INITIAL_VERSION",
    "QuotationVersion",
    "QuotationDecision",
    "DecisionType",
    "FollowUp",
    "FollowUpType",
]
