"""Exception handlers producing ``{"detail", "code"}`` error bodies.

Domain errors keep their message and details. Everything else is reduced
to a fixed message per status so that SQL, stack traces and submitted
salaries never reach the client.
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from staffing_api.config import get_settings
from staffing_api.exceptions import StaffingAPIError
from staffing_api.utils.db_errors import is_unique_violation
from staffing_api.utils.secure_logging import log_error

logger = logging.getLogger(__name__)

# Fixed client-facing message and code per status
_GENERIC_ERRORS: dict[int, tuple[str, str]] = {
    400: ("Invalid request", "validation_error"),
    401: ("Authentication required", "unauthenticated"),
    403: ("Access denied", "forbidden"),
    404: ("Resource not found", "not_found"),
    405: ("Method not allowed", "method_not_allowed"),
    409: ("Concurrent modification detected", "conflict"),
    422: ("Invalid input data", "validation_error"),
    429: ("Too many requests", "rate_limited"),
    500: ("Internal server error", "internal"),
}

# At most this many field errors are reported for one request
MAX_REPORTED_FIELD_ERRORS = 3


def _generic(status_code: int) -> tuple[str, str]:
    return _GENERIC_ERRORS.get(status_code, ("Request failed", "error"))


def _respond(
    request: Request,
    status_code: int,
    message: Any,
    code: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build an error response, echoing CORS headers for allowed origins.

    Exception handlers answer before the CORS middleware sees the response,
    so a browser client would otherwise get an opaque failure.
    """
    body: dict[str, Any] = {"detail": message, "code": code}
    for key, value in (details or {}).items():
        body.setdefault(key, value)

    response_headers = dict(headers or {})
    origin = request.headers.get("origin")
    if origin and origin in get_settings().cors_origins_list:
        response_headers["Access-Control-Allow-Origin"] = origin
        response_headers["Access-Control-Allow-Credentials"] = "true"

    return JSONResponse(status_code=status_code, content=body, headers=response_headers)


def summarize_field_errors(errors: list[dict[str, Any]]) -> str | None:
    """Turn pydantic errors into ``field: message`` pairs.

    Only the last path element is kept, and private fields are skipped.

    Args:
        errors: Errors as returned by ``RequestValidationError.errors()``

    Returns:
        Semicolon-joined summary, or None when nothing is reportable
    """
    parts = []
    for error in errors:
        location = error.get("loc") or ("field",)
        field = location[-1]
        if isinstance(field, str) and field.startswith("_"):
            continue
        parts.append(f"{field}: {error.get('msg', 'Invalid value')}")
    if not parts:
        return None
    return "; ".join(parts[:MAX_REPORTED_FIELD_ERRORS])


async def staffing_exception_handler(request: Request, exc: StaffingAPIError) -> JSONResponse:
    """Map a domain exception to its HTTP status and code.

    Args:
        request: FastAPI request
        exc: Domain exception raised by a service

    Returns:
        JSONResponse with ``detail``, ``code`` and the exception details
    """
    if exc.status_code >= 500:
        log_error(logger, f"Internal error for {request.url.path}", exc, code=exc.code)
        return _respond(request, exc.status_code, _generic(500)[0], exc.code)

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return _respond(request, exc.status_code, exc.message, exc.code, exc.details, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing and framework errors such as unknown paths or methods."""
    message, code = _generic(exc.status_code)
    if get_settings().debug:
        message = exc.detail
    return _respond(request, exc.status_code, message, code, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies, paths or query strings.

    Args:
        request: FastAPI request
        exc: Validation exception

    Returns:
        422 response with code ``validation_error``
    """
    errors = exc.errors()
    # Field locations only; submitted values may hold salaries
    logger.warning(
        "Validation error for %s: %s",
        request.url.path,
        [".".join(str(part) for part in error.get("loc", ())) for error in errors],
    )

    if get_settings().debug:
        message: Any = errors
    else:
        message = summarize_field_errors(errors) or _generic(422)[0]
    return _respond(request, status.HTTP_422_UNPROCESSABLE_ENTITY, message, "validation_error")


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database failures that escaped the services.

    A unique violation here (e.g. raised at commit) means a concurrent
    writer took the ACTIVE or PENDING slot first.
    """
    log_error(logger, f"Database error for {request.url.path}", exc)

    if isinstance(exc, IntegrityError) and is_unique_violation(exc):
        message, code = _generic(409)
        return _respond(request, status.HTTP_409_CONFLICT, message, code)
    return _respond(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error occurred", "internal")


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for anything unexpected."""
    logger.error("Unhandled exception for %s", request.url.path, exc_info=exc)

    if get_settings().debug:
        return _respond(request, 500, str(exc), "internal", {"type": type(exc).__name__})
    return _respond(request, 500, *_generic(500))
