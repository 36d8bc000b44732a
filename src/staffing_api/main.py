"""Staffing API application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from staffing_api import __version__
from staffing_api.config import Settings, get_settings
from staffing_api.database import engine
from staffing_api.exceptions import StaffingAPIError
from staffing_api.middleware.error_handler import (
    generic_exception_handler,
    http_exception_handler,
    sqlalchemy_exception_handler,
    staffing_exception_handler,
    validation_exception_handler,
)
from staffing_api.routers import contracts, employees, transfers
from staffing_api.security.rate_limit import limiter

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/firms"

_RESPONSE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


class ResponseHeadersMiddleware(BaseHTTPMiddleware):
    """Adds hardening headers and forbids caching of API responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.update(_RESPONSE_HEADERS)
        # Bodies carry salaries
        response.headers.setdefault("Cache-Control", "no-store, max-age=0")
        response.headers.setdefault("Vary", "Accept, Authorization, Origin")
        if not get_settings().debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def configure_logging(level: str) -> None:
    """Set up root logging.

    SQLAlchemy's engine logger is held at WARNING since bound parameters
    include salaries.
    """
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger().setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting %s %s (%s)", settings.app_name, __version__, settings.environment)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


async def rate_limited_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with the usual error body and a Retry-After hint."""
    logger.warning("Rate limit hit on %s: %s", request.url.path, exc.detail)
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests", "code": "rate_limited"},
        headers={"Retry-After": "60"},
    )


def cors_origins(settings: Settings) -> list[str]:
    """Explicit http(s) origins allowed to call the API with credentials.

    Args:
        settings: Application settings

    Returns:
        Origins to pass to the CORS middleware

    Raises:
        ValueError: If a wildcard is configured or production has no origins
    """
    if "*" in settings.cors_origins_list:
        raise ValueError("CORS_ORIGINS cannot contain '*' since credentials are allowed")

    origins = [o for o in settings.cors_origins_list if o.startswith(("http://", "https://"))]
    if not origins and settings.environment == "production":
        raise ValueError("CORS_ORIGINS must be set in production")
    return origins


def create_app() -> FastAPI:
    """Build the application with its routers, handlers and middleware."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Contract lifecycle and inter-firm transfer API",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limited_handler)
    app.add_exception_handler(StaffingAPIError, staffing_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Added last so it wraps everything else
    app.add_middleware(ResponseHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    for module, tag in ((contracts, "Contracts"), (employees, "Employees"), (transfers, "Transfers")):
        app.include_router(module.router, prefix=API_PREFIX, tags=[tag])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
