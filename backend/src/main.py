"""
FastAPI application for the FamilyHub household calendar.

Wires together CORS, error handlers, the health endpoint and the two
routers: household events (occurrences, overrides, import/export) and
calendar feeds.

Environment Variables:
    FAMHUB_DB_URL: Database connection URL
    FAMHUB_ENV: production or development (default: development)
    FAMHUB_LOG_LEVEL: Log level (default: INFO)
    FAMHUB_CORS_ORIGINS: Comma-separated list of allowed CORS origins
"""

from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from backend.src.api import events, feeds
from backend.src.config.settings import get_settings
from backend.src.db.database import dispose_engine
from backend.src.utils.logging_config import get_logger, init_logging
from backend.src.utils.version import get_version


def _error_response(status_code: int, error: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, **extra},
    )


def _request_context(request: Request) -> Dict[str, str]:
    return {"path": request.url.path, "method": request.method}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective feed settings on startup; release pooled connections on shutdown."""
    logger = get_logger("api")
    settings = get_settings()
    logger.info(
        "Starting FamilyHub backend",
        extra={
            "version": app.version,
            "feed_uid_domain": settings.feed_uid_domain,
            "feed_horizon_days": settings.feed_horizon_days,
        },
    )
    yield
    logger.info("Shutting down FamilyHub backend")
    dispose_engine()


init_logging()

app = FastAPI(
    title="FamilyHub API",
    description="Household calendar backend: recurring activities, "
                "iCalendar subscription feeds and bulk import.",
    version=get_version(),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Pydantic errors raised inside handlers, after request parsing succeeded."""
    get_logger("api").warning(
        "Validation error",
        extra={**_request_context(request), "errors": exc.errors(include_url=False)},
    )
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation Error",
        "Request validation failed",
        details=exc.errors(include_url=False, include_context=False),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    get_logger("db").error(
        "Database error", extra={**_request_context(request), "error": str(exc)}
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Database Error",
        "An error occurred while accessing the database. Please try again later.",
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    get_logger("api").error(
        "Unhandled exception",
        extra={**_request_context(request), "error_type": type(exc).__name__},
        exc_info=exc,
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "An unexpected error occurred. Please try again later.",
    )


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "service": "familyhub-backend",
        "version": app.version,
    }


app.include_router(events.router, prefix="/api")
app.include_router(feeds.router, prefix="/api")
