"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. Consistent error handling across the API
2. HTTP status code mapping for FastAPI
3. Structured error responses with contextual data
4. No storage internals leaking past the service boundary

IMPORTANT: NEVER raise the base Exception class. Always use custom exceptions.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class ensures consistent
    error responses and HTTP status code mapping.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        """Stable error tag used by callers to branch on the failure type."""
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "error": self.kind,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    WHY: Out-of-range quantities, prices and percentages are surfaced to the
    caller immediately instead of being clamped.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class QuotationNotFoundError(ResourceNotFoundError):
    """Raised when a quotation doesn't exist."""

    default_message = "Quotation not found"


class QuotationVersionNotFoundError(ResourceNotFoundError):
    """Raised when a historical quotation version doesn't exist."""

    default_message = "Quotation version not found"


class CustomerNotFoundError(ResourceNotFoundError):
    """Raised when a customer, location or contact doesn't exist."""

    default_message = "Customer not found"


class FollowUpNotFoundError(ResourceNotFoundError):
    """Raised when a follow-up doesn't exist."""

    default_message = "Follow-up not found"


# ============================================================================
# Business Logic Exceptions
# ============================================================================


class BusinessRuleViolation(AppException):
    """
    Raised when a business rule is violated.

    WHY: The request was well-formed but semantically incorrect.

    HTTP Status: 422 Unprocessable Entity
    """

    status_code = 422
    default_message = "Business rule violation"


class CommentRequiredError(BusinessRuleViolation):
    """
    Raised when a version-changing save arrives without a change comment.

    WHY: Every version transition must carry the reason it happened.
    Recoverable: the caller prompts for a comment and retries the save.

    HTTP Status: 422 Unprocessable Entity
    """

    default_message = "A change comment is required to save a new version"


class InvalidStateTransitionError(BusinessRuleViolation):
    """
    Raised when an operation conflicts with the current lifecycle state.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Invalid state transition"


class QuotationExpiredError(InvalidStateTransitionError):
    """
    Raised when an expired quotation is edited in place.

    WHY: An expired quotation can only move forward through a reissue,
    which creates a new record with a fresh validity window.

    HTTP Status: 409 Conflict
    """

    default_message = "Quotation has expired; re-issue it instead of editing"


class QuotationLockedError(InvalidStateTransitionError):
    """
    Raised when a won/lost quotation is modified.

    HTTP Status: 409 Conflict
    """

    default_message = "Quotation cannot be modified in its current status"


class ReissueNotAllowedError(InvalidStateTransitionError):
    """
    Raised when a quotation that is not expired (or already closed) is re-issued.

    HTTP Status: 409 Conflict
    """

    default_message = "Only expired, open quotations can be re-issued"


class FollowUpNotAllowedError(InvalidStateTransitionError):
    """
    Raised when a follow-up is logged against a quotation that isn't pending.

    HTTP Status: 409 Conflict
    """

    default_message = "Follow-ups are allowed only for pending quotations"


class ConcurrentModificationError(AppException):
    """
    Raised when a quotation changed between read and write.

    WHY: Two editors saving from the same version would both compute the
    same "next version"; the second write is rejected instead of silently
    overwriting the first.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Quotation was modified by someone else; reload and retry"


# ============================================================================
# Database Exceptions
# ============================================================================


class PersistenceError(AppException):
    """
    Raised when database operations fail.

    WHY: Database errors are caught at the DAO layer and converted
    to application exceptions with safe error messages (no SQL exposed).

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "Database error"


# ============================================================================
# Audit Log Exceptions
# ============================================================================


class AuditLogImmutableError(AppException):
    """
    Raised when attempting to update or delete an audit log.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "Audit logs are immutable and cannot be modified"
