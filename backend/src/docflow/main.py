"""DocFlow Backend - Main FastAPI Application

Document lifecycle and approval engine for a multi-tenant ERP.

This module creates and configures the FastAPI application, including:
- API routers (documents, approvals, search, projects)
- Middleware (request ID correlation, CORS)
- Exception handlers mapping domain errors to JSON responses
- Health and metrics endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import settings
from .database import init_db
from .errors import DocflowError
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router

from .approvals.router import router as approvals_router
from .documents.router import router as documents_router
from .projects.router import router as projects_router
from .search.router import router as search_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting DocFlow API {__version__} ({settings.ENVIRONMENT})")
    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("Created missing database tables")

    yield

    logger.info("DocFlow API stopped")


def _error_body(error: str, message: str, details: Any = None) -> dict:
    return {"error": error, "message": message, "details": details or {}}


async def docflow_exception_handler(request: Request, exc: DocflowError) -> JSONResponse:
    """Domain errors carry their own status code and error slug."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
        extra={"status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    logger.warning(
        f"Rejected request body on {request.method} {request.url.path}",
        extra={"errors": errors},
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body("validation_error", "Request validation failed", errors),
    )


def _internal_error(request: Request, exc: Exception, error: str) -> JSONResponse:
    # Full traceback goes to the log only.
    logger.error(f"{error} on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(error, "An unexpected error occurred. Please try again later."),
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    return _internal_error(request, exc, "database_error")


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return _internal_error(request, exc, "internal_error")


def create_app() -> FastAPI:
    """Build the configured FastAPI application."""
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    docs_enabled = settings.ENVIRONMENT != "production"
    app = FastAPI(
        title="DocFlow API",
        description="Document lifecycle and approval engine",
        version=__version__,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    # Request ID Middleware (must be first for proper correlation)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(DocflowError, docflow_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(observability_router)

    # Static /documents/... paths before /documents/{document_id}
    app.include_router(search_router, prefix="/api/v1")
    app.include_router(approvals_router, prefix="/api/v1")
    app.include_router(documents_router, prefix="/api/v1")
    app.include_router(projects_router, prefix="/api/v1")

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        """Root endpoint - API information."""
        return {
            "name": "DocFlow API",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if docs_enabled else None,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "docflow.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
