"""
Middleware package.

WHY: Keeps cross-cutting request handling (request ids, client context)
out of the route handlers.
"""

from quotedesk.middleware.request_context import (
    RequestContext,
    RequestContextMiddleware,
    get_request_context,
    get_client_ip,
)

__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "get_request_context",
    "get_client_ip",
]
