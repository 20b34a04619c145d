"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between database operations and business logic,
making the codebase more testable and maintainable.
"""

from quotedesk.dao.base import BaseDAO
from quotedesk.dao.audit_log import AuditLogDAO
from quotedesk.dao.customer import CustomerDAO, CustomerLocationDAO, CustomerContactDAO
from quotedesk.dao.quotation import QuotationDAO
from quotedesk.dao.quotation_version import QuotationVersionDAO
from quotedesk.dao.quotation_decision import QuotationDecisionDAO
from quotedesk.dao.followup import FollowUpDAO

__all__ = [
    "BaseDAO",
    "AuditLogDAO",
    "CustomerDAO",
    "CustomerLocationDAO",
    "CustomerContactDAO",
    "QuotationDAO",
    "QuotationVersionDAO",
    "QuotationDecisionDAO",
    "FollowUpDAO",
]
