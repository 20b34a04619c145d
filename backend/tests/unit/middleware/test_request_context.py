"""
Request Context Middleware Tests.

WHAT: Unit tests for the RequestContextMiddleware.

WHY: Audit entries for quotation changes carry the client IP, user agent
and request id captured here. These tests ensure correct behavior for:
- Client IP extraction (direct and through proxies)
- Request ID reuse and generation
- Context availability throughout the request lifecycle

HOW: Tests build raw ASGI scopes and call dispatch directly.
"""

import pytest
from unittest.mock import MagicMock
from starlette.requests import Request
from starlette.responses import Response

from quotedesk.middleware.request_context import (
    get_client_ip,
    get_request_id,
    get_request_context,
    RequestContextMiddleware,
    RequestContext,
    _request_context,
)


def _make_request(headers: dict = None, client_host: str = None, method: str = "GET", path: str = "/test") -> Request:
    """
    Create a request with specified headers and client.

    Args:
        headers: Dictionary of headers
        client_host: Client IP address
        method: HTTP method
        path: Request path

    Returns:
        Request object
    """
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": (client_host, 12345) if client_host else None,
    }
    return Request(scope)


async def _ok(request: Request) -> Response:
    return Response(content="OK", status_code=200)


class TestGetClientIp:
    """Tests for the get_client_ip function."""

    def test_get_client_ip_from_x_real_ip(self):
        request = _make_request(headers={"X-Real-IP": "192.168.1.100"}, client_host="10.0.0.1")
        assert get_client_ip(request) == "192.168.1.100"

    def test_get_client_ip_from_x_forwarded_for(self):
        """
        WHY: The first X-Forwarded-For entry is the original client.
        """
        request = _make_request(
            headers={"X-Forwarded-For": "203.0.113.50, 70.41.3.18, 150.172.238.178"},
            client_host="10.0.0.1",
        )
        assert get_client_ip(request) == "203.0.113.50"

    def test_get_client_ip_prefers_x_real_ip_over_x_forwarded_for(self):
        request = _make_request(
            headers={
                "X-Real-IP": "192.168.1.100",
                "X-Forwarded-For": "203.0.113.50, 70.41.3.18",
            },
            client_host="10.0.0.1",
        )
        assert get_client_ip(request) == "192.168.1.100"

    def test_get_client_ip_from_direct_connection(self):
        request = _make_request(client_host="192.168.1.50")
        assert get_client_ip(request) == "192.168.1.50"

    def test_get_client_ip_unknown_fallback(self):
        request = _make_request()
        assert get_client_ip(request) == "unknown"

    def test_get_client_ip_strips_whitespace(self):
        request = _make_request(headers={"X-Real-IP": "  192.168.1.100  "})
        assert get_client_ip(request) == "192.168.1.100"


class TestGetRequestId:
    """Tests for request id reuse and generation."""

    def test_reuses_incoming_request_id(self):
        """
        WHY: A gateway that already tagged the request keeps its id.
        """
        request = _make_request(headers={"X-Request-ID": "gw-42"})
        assert get_request_id(request) == "gw-42"

    def test_generates_uuid_when_missing(self):
        request = _make_request()
        assert len(get_request_id(request)) == 36

    def test_ignores_oversized_incoming_id(self):
        request = _make_request(headers={"X-Request-ID": "x" * 65})
        request_id = get_request_id(request)
        assert request_id != "x" * 65
        assert len(request_id) == 36


class TestGetRequestContext:
    """Tests for the get_request_context function."""

    def test_get_request_context_returns_none_by_default(self):
        """
        WHY: Background jobs (recompute) run outside any request.
        """
        _request_context.set(None)
        assert get_request_context() is None

    def test_get_request_context_returns_set_context(self):
        ctx = RequestContext(
            request_id="test-id",
            ip_address="1.2.3.4",
            user_agent="Test",
            path="/test",
            method="GET",
        )

        token = _request_context.set(ctx)
        try:
            assert get_request_context() == ctx
        finally:
            _request_context.reset(token)


class TestRequestContextMiddleware:
    """Tests for the RequestContextMiddleware class."""

    @pytest.mark.asyncio
    async def test_middleware_adds_request_id_header(self):
        middleware = RequestContextMiddleware(app=MagicMock())
        response = await middleware.dispatch(_make_request(), _ok)

        assert "X-Request-ID" in response.headers
        assert len(response.headers["X-Request-ID"]) == 36

    @pytest.mark.asyncio
    async def test_middleware_echoes_incoming_request_id(self):
        middleware = RequestContextMiddleware(app=MagicMock())
        response = await middleware.dispatch(
            _make_request(headers={"X-Request-ID": "ui-7f3a"}), _ok
        )

        assert response.headers["X-Request-ID"] == "ui-7f3a"

    @pytest.mark.asyncio
    async def test_middleware_sets_context_in_request_state(self):
        request = _make_request(
            headers={"X-Real-IP": "192.168.1.100", "User-Agent": "TestBrowser/1.0"},
            method="PUT",
            path="/api/quotations/1",
        )
        captured = {}

        async def call_next(req):
            captured["state"] = getattr(req.state, "context", None)
            captured["var"] = get_request_context()
            return Response(content="OK", status_code=200)

        middleware = RequestContextMiddleware(app=MagicMock())
        await middleware.dispatch(request, call_next)

        context = captured["state"]
        assert context is not None
        assert context == captured["var"]
        assert context.ip_address == "192.168.1.100"
        assert context.user_agent == "TestBrowser/1.0"
        assert context.path == "/api/quotations/1"
        assert context.method == "PUT"

    @pytest.mark.asyncio
    async def test_middleware_clears_context_after_request(self):
        middleware = RequestContextMiddleware(app=MagicMock())
        await middleware.dispatch(_make_request(), _ok)

        assert get_request_context() is None

    @pytest.mark.asyncio
    async def test_middleware_clears_context_on_error(self):
        """
        WHY: Errors in handlers must not leak context into the next request.
        """

        async def failing_call_next(req):
            raise RuntimeError("Handler failed")

        middleware = RequestContextMiddleware(app=MagicMock())
        with pytest.raises(RuntimeError):
            await middleware.dispatch(_make_request(), failing_call_next)

        assert get_request_context() is None
