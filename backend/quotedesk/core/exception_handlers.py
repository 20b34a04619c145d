"""
FastAPI exception handlers.

WHAT: Renders every failure as the QuoteDesk error envelope:

    {"error": <kind>, "message": <text>, "status_code": <int>, "details": <dict|null>}

WHY: The quotation form branches on `error` (CommentRequiredError opens the
comment dialog, QuotationExpiredError offers a re-issue, a 409
ConcurrentModificationError asks the user to reload). Request validation,
routing errors and unexpected failures use the same shape so the client
only parses one.
"""

import logging
from typing import Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from quotedesk.core.exceptions import AppException


logger = logging.getLogger(__name__)


def _envelope(
    error: str,
    message: Any,
    status_code: int,
    details: Optional[dict] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "status_code": status_code,
            "details": details,
        },
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render an AppException with its own status and filtered context.

    Business rule failures (4xx) are expected outcomes of a save or reissue
    and are not logged here; persistence failures (5xx) are.
    """
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Render pydantic request errors as a 400 ValidationError.

    details.errors lists one entry per offending field, with the location
    joined by dots (e.g. "body.items.0.qty").
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return _envelope("ValidationError", "Request validation failed", 400, {"errors": errors})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes and wrong methods (404/405) raised before any endpoint runs."""
    return _envelope("HTTPException", exc.detail, exc.status_code)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last resort for errors no layer translated.

    The traceback goes to the log; the client gets a 500 without internals.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return _envelope("InternalServerError", "An unexpected error occurred", 500)
