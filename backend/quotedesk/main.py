"""
Main FastAPI application.

WHY: This is the entry point for the application. It configures middleware,
routes, exception handlers, and other application-level concerns.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from quotedesk.core.config import settings
from quotedesk.core.exceptions import AppException
from quotedesk.core.exception_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    generic_exception_handler,
)
from quotedesk.middleware import RequestContextMiddleware
from quotedesk.api import customers, followups, maintenance, pricing, quotations
from quotedesk.services.scheduler import start_scheduler, shutdown_scheduler, get_scheduler_status


logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    WHY: Factory pattern allows easier testing with different configurations
    and makes it possible to create multiple app instances if needed.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Quotation pricing and lifecycle API",
        version=settings.VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Register exception handlers
    # WHY: Every error leaves the API in the same JSON envelope
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Configure Request Context Middleware
    # WHY: Captures client IP, user agent, and request ID for audit logging.
    app.add_middleware(RequestContextMiddleware)

    # Configure CORS
    # WHY: The quotation UI is served from a different origin in development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """
        Health check endpoint.

        WHY: Allows load balancers and monitoring to verify service health
        without checking database connectivity.
        """
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "scheduler": get_scheduler_status(),
        }

    @app.on_event("startup")
    async def startup_event():
        """Start the background job scheduler."""
        await start_scheduler()

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop background jobs."""
        await shutdown_scheduler()

    @app.get("/", tags=["root"])
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/api/docs",
        }

    # Register API routers
    app.include_router(pricing.router, prefix=settings.API_V1_PREFIX)
    app.include_router(quotations.router, prefix=settings.API_V1_PREFIX)
    app.include_router(followups.router, prefix=settings.API_V1_PREFIX)
    app.include_router(customers.router, prefix=settings.API_V1_PREFIX)
    app.include_router(maintenance.router, prefix=settings.API_V1_PREFIX)

    return app


# Create app instance
# WHY: Creating the app instance here allows it to be imported by uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    # WHY: This allows running the app directly with `python -m quotedesk.main`
    # for development. In production, use `uvicorn quotedesk.main:app` directly.
    uvicorn.run(
        "quotedesk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info" if settings.DEBUG else "warning",
    )
