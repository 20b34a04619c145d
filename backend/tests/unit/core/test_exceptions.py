"""
Tests for custom exception hierarchy.

WHY: Comprehensive exception testing ensures:
1. Exceptions serialize correctly without leaking sensitive data
2. HTTP status codes map correctly
3. Every error carries a stable kind callers can branch on
4. Exception handlers render one JSON envelope
"""

import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field

from quotedesk.core.exceptions import (
    AppException,
    ValidationError,
    ResourceNotFoundError,
    QuotationNotFoundError,
    QuotationVersionNotFoundError,
    CustomerNotFoundError,
    FollowUpNotFoundError,
    BusinessRuleViolation,
    CommentRequiredError,
    InvalidStateTransitionError,
    QuotationExpiredError,
    QuotationLockedError,
    ReissueNotAllowedError,
    FollowUpNotAllowedError,
    ConcurrentModificationError,
    PersistenceError,
    AuditLogImmutableError,
)
from quotedesk.core.exception_handlers import (
    app_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)


class QtyBody(BaseModel):
    qty: int = Field(..., ge=0)


class TestAppException:
    """Test base AppException class."""

    def test_default_message(self):
        exc = AppException()
        assert exc.message == "An unexpected error occurred"
        assert exc.status_code == 500

    def test_custom_message_and_status(self):
        exc = AppException(message="Custom error message", status_code=418)
        assert exc.message == "Custom error message"
        assert exc.status_code == 418

    def test_context_data(self):
        exc = AppException(quotation_id=7, field="qty")
        assert exc.context == {"quotation_id": 7, "field": "qty"}

    def test_kind_is_class_name(self):
        assert QuotationExpiredError().kind == "QuotationExpiredError"

    def test_to_dict_basic(self):
        exc = AppException(message="Test error", quotation_id=123)
        result = exc.to_dict()

        assert result["error"] == "AppException"
        assert result["message"] == "Test error"
        assert result["status_code"] == 500
        assert result["details"] == {"quotation_id": 123}

    def test_to_dict_filters_sensitive_data(self):
        exc = AppException(
            message="Test error",
            quotation_id=123,
            password="secret123",
            token="abc123",
            api_key="key123",
        )
        details = exc.to_dict()["details"]

        assert "password" not in details
        assert "token" not in details
        assert "api_key" not in details
        assert details["quotation_id"] == 123

    def test_to_dict_no_context(self):
        assert AppException(message="Test error").to_dict()["details"] is None


class TestStatusCodes:
    """Each error maps to the HTTP status the API documents."""

    @pytest.mark.parametrize(
        "exc_class, status_code",
        [
            (ValidationError, 400),
            (ResourceNotFoundError, 404),
            (QuotationNotFoundError, 404),
            (QuotationVersionNotFoundError, 404),
            (CustomerNotFoundError, 404),
            (FollowUpNotFoundError, 404),
            (BusinessRuleViolation, 422),
            (CommentRequiredError, 422),
            (InvalidStateTransitionError, 409),
            (QuotationExpiredError, 409),
            (QuotationLockedError, 409),
            (ReissueNotAllowedError, 409),
            (FollowUpNotAllowedError, 409),
            (ConcurrentModificationError, 409),
            (PersistenceError, 500),
            (AuditLogImmutableError, 403),
        ],
    )
    def test_status_code(self, exc_class, status_code):
        assert exc_class().status_code == status_code

    def test_lifecycle_errors_share_a_base(self):
        """
        WHY: Callers can catch every lifecycle conflict in one clause.
        """
        for exc_class in (QuotationExpiredError, QuotationLockedError, ReissueNotAllowedError):
            assert issubclass(exc_class, InvalidStateTransitionError)

    def test_validation_error_with_field_context(self):
        exc = ValidationError(message="discount_percent must be between 0 and 100", field="discount_percent", value="150")
        details = exc.to_dict()["details"]

        assert details["field"] == "discount_percent"
        assert details["value"] == "150"


class TestExceptionHandlerIntegration:
    """Test exception handler integration with FastAPI."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        app.add_exception_handler(AppException, app_exception_handler)
        app.add_exception_handler(RequestValidationError, validation_exception_handler)
        app.add_exception_handler(Exception, generic_exception_handler)

        @app.get("/expired")
        async def expired():
            raise QuotationExpiredError(quotation_id=5, expiry_date="2024-01-31")

        @app.get("/sensitive")
        async def sensitive():
            raise AppException(message="Error", quotation_id=1, password="should-be-filtered")

        @app.post("/body")
        async def body(data: QtyBody):
            return {"qty": data.qty}

        @app.get("/boom")
        async def boom():
            raise RuntimeError("database password is hunter2")

        return app

    @pytest.fixture
    def client(self, app):
        return TestClient(app, raise_server_exceptions=False)

    def test_exception_handler_returns_json(self, client):
        response = client.get("/expired")

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "QuotationExpiredError"
        assert data["details"] == {"quotation_id": 5, "expiry_date": "2024-01-31"}

    def test_exception_handler_filters_sensitive_data(self, client):
        data = client.get("/sensitive").json()
        assert "password" not in data["details"]

    def test_request_validation_uses_same_envelope(self, client):
        response = client.post("/body", json={"qty": -1})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "ValidationError"
        assert data["details"]["errors"][0]["field"] == "body.qty"

    def test_unexpected_errors_do_not_leak(self, client):
        response = client.get("/boom")

        assert response.status_code == 500
        assert "hunter2" not in response.text
