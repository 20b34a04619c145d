"""
Request context middleware.

WHAT: Middleware that extracts request context (IP address, user agent, request ID)
and makes it available throughout the request lifecycle.

WHY: Audit entries for quotation changes carry where a change came from,
and log lines carry a request id so one save can be followed across
service, DAO and audit logs.

HOW: Stores the context in request.state and in a ContextVar so services
and DAOs can read it without a request object.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass(frozen=True)
class RequestContext:
    """
    Container for request-scoped context data.

    Fields:
    - request_id: Unique identifier for the request (for log correlation)
    - ip_address: Client's real IP (considering proxies)
    - user_agent: Client's browser/application identifier
    - path: Request path
    - method: HTTP method
    """

    request_id: str
    ip_address: str
    user_agent: Optional[str]
    path: str
    method: str


# WHY: ContextVar ensures each async request gets its own isolated context
_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """
    Get the current request context.

    Returns:
        RequestContext if within a request, None otherwise (background jobs,
        command line runs)
    """
    return _request_context.get()


def get_client_ip(request: Request) -> str:
    """
    Extract the real client IP address from a request.

    HOW: Checks headers in order of trust:
    1. X-Real-IP (set by nginx and similar proxies)
    2. X-Forwarded-For (first entry is the original client)
    3. request.client.host (direct connection IP)

    Args:
        request: The incoming request

    Returns:
        Client IP address as string
    """
    x_real_ip = request.headers.get("X-Real-IP")
    if x_real_ip:
        return x_real_ip.strip()

    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def get_request_id(request: Request) -> str:
    """
    Reuse the caller's X-Request-ID when present, otherwise mint one.

    WHY: A gateway or the UI may already have tagged the request; keeping
    its id lets logs on both sides be joined.
    """
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and len(incoming) <= 64:
        return incoming.strip()
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that captures and stores request context.

    WHAT: Extracts IP, user agent, and request ID from every request,
    makes them available for audit logging and echoes the request ID
    back in the response.

    Example:
        ctx = get_request_context()
        logger.info(f"Request {ctx.request_id} from {ctx.ip_address}")
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and add context.

        Args:
            request: Incoming request
            call_next: Next middleware/handler

        Returns:
            Response with request ID header added
        """
        context = RequestContext(
            request_id=get_request_id(request),
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
            path=request.url.path,
            method=request.method,
        )

        request.state.context = context
        token = _request_context.set(context)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = context.request_id

            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.debug(
                f"{context.method} {context.path} -> {response.status_code} "
                f"in {elapsed_ms:.1f}ms [{context.request_id}]"
            )
            return response

        finally:
            _request_context.reset(token)
