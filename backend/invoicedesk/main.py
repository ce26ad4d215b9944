"""
FastAPI application factory and configuration.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .config.database import db_manager
from .config.logging import configure_logging
from .config.observability import record_request
from .routers import clients, company, database_admin, invoices, metrics, rates, system
from .utils.errors import DomainError, ERROR_CODES, error_payload

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


class ResponseTimeMiddleware(BaseHTTPMiddleware):
    """Add X-Response-Time and record request metrics."""

    async def dispatch(self, request: Request, call_next):  # noqa: D401
        start_time = time.time()
        response = await call_next(request)
        duration_s = time.time() - start_time
        response.headers["X-Response-Time"] = f"{duration_s * 1000:.1f}ms"

        # Label by route template so /api/invoices/1 and /api/invoices/2 share a series
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        record_request(request.method, path, response.status_code, duration_s)

        if duration_s > 1.0:
            logger.info("Slow response: %.1fms for %s %s", duration_s * 1000, request.method, path)
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Generate a per-request ID, exposed to handlers and echoed in the response."""

    async def dispatch(self, request: Request, call_next):  # noqa: D401
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    """Open the store on startup; a failure here is fatal for the process."""
    configure_logging()
    logger.info("Starting up invoicedesk API...")
    try:
        await db_manager.start()
    except Exception as e:  # noqa: BLE001 - logged then re-raised
        logger.error("Application startup failed: %s", e)
        raise
    logger.info("Application startup complete (database: %s)", db_manager.path)

    yield

    logger.info("Shutting down invoicedesk API...")
    await db_manager.stop()


def create_application() -> FastAPI:
    """Create and configure FastAPI application."""

    application_obj = FastAPI(
        title="invoicedesk",
        description="Local invoicing backend: clients, invoices, documents and backups",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    setup_middleware(application_obj)
    setup_exception_handlers(application_obj)
    setup_routes(application_obj)

    return application_obj


def setup_middleware(app: FastAPI) -> None:
    """Setup application middleware."""

    # The UI is served from a different local origin (dev server or file://)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ResponseTimeMiddleware)
    app.add_middleware(RequestIDMiddleware)


def setup_exception_handlers(app: FastAPI) -> None:
    """Setup global exception handlers."""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors with standardized response."""
        import json as _json
        sanitized = []
        for err in exc.errors():
            cleaned = {}
            for k, v in err.items():
                try:
                    _json.dumps(v, allow_nan=False)
                    cleaned[k] = v
                except (TypeError, ValueError):
                    cleaned[k] = str(v)
            sanitized.append(cleaned)
        return JSONResponse(
            status_code=422,
            content=error_payload(
                ERROR_CODES["validation"], "Request validation failed",
                details=sanitized, path=str(request.url.path)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions; routers attach a `code` (and optional `details`)."""
        default_code = ERROR_CODES["not_found"] if exc.status_code == 404 else "HTTP_ERROR"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(
                getattr(exc, "code", default_code), exc.detail,
                details=getattr(exc, "details", None), path=str(request.url.path)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc.code, exc.message, details=exc.details, path=str(request.url.path)),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_payload(ERROR_CODES["db"], "Database operation failed", path=str(request.url.path)),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error("Unhandled exception: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_payload(
                ERROR_CODES["internal"], "An unexpected error occurred", path=str(request.url.path)),
        )


def setup_routes(app: FastAPI) -> None:
    """Setup application routes."""

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "invoicedesk API",
            "version": APP_VERSION,
            "docs": "/docs",
            "health": "/api/health",
        }

    app.include_router(invoices.router, prefix="/api/invoices", tags=["Invoices"])
    app.include_router(clients.router)
    app.include_router(company.router)
    app.include_router(rates.router)
    app.include_router(database_admin.router)
    app.include_router(system.router)
    # Exposes /metrics (Prometheus exposition format) without API prefix
    app.include_router(metrics.router)


# Create the application instance
app = create_application()


__all__ = ["app", "create_application"]
