"""Secure logging utilities to prevent information disclosure."""

import logging
import re
from typing import Any

from staffing_api.config import get_settings

# Patterns removed from exception text before it reaches production logs
_PATH_PATTERN = re.compile(r"['\"]?(/[a-zA-Z0-9_./\-]+|[A-Z]:\\[^\s'\"]+)['\"]?")
_URL_PATTERN = re.compile(r"(postgresql|postgres|sqlite|redis|http|https)(\+\w+)?://[^\s]+")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+")
_TOKEN_PATTERN = re.compile(r"[a-zA-Z0-9_\-]{40,}")
_MAX_MESSAGE_LENGTH = 200


def is_debug_mode() -> bool:
    """Check if application is running in debug mode."""
    return get_settings().debug


def sanitize_exception_message(error: BaseException) -> str:
    """Sanitize exception message for logging in production.

    Removes file system paths, connection strings, e-mail addresses and
    token-like strings, then truncates the result.

    Args:
        error: The exception to sanitize

    Returns:
        Sanitized error message suitable for production logs
    """
    error_msg = str(error)
    error_msg = _URL_PATTERN.sub("[URL]", error_msg)
    error_msg = _PATH_PATTERN.sub("[PATH]", error_msg)
    error_msg = _EMAIL_PATTERN.sub("[EMAIL]", error_msg)
    error_msg = _TOKEN_PATTERN.sub("[TOKEN]", error_msg)

    if len(error_msg) > _MAX_MESSAGE_LENGTH:
        error_msg = error_msg[: _MAX_MESSAGE_LENGTH - 3] + "..."

    return error_msg


def _format_context(context: dict[str, Any]) -> str:
    return " ".join(f"{key}={value}" for key, value in sorted(context.items()))


def log_error(
    logger: logging.Logger,
    message: str,
    error: BaseException | None = None,
    **context: Any,
) -> None:
    """Log an error with appropriate detail level based on environment.

    In debug mode, logs full exception details with the traceback.
    Otherwise logs a sanitized message without sensitive details.

    Args:
        logger: The logger instance to use
        message: The log message (should be generic, no sensitive data)
        error: Optional exception to include
        **context: Identifiers to append (firm, contract, transfer ids)
    """
    suffix = f" [{_format_context(context)}]" if context else ""
    if error is None:
        logger.error("%s%s", message, suffix)
    elif is_debug_mode():
        logger.error("%s: %s%s", message, error, suffix, exc_info=error)
    else:
        logger.error("%s: %s%s", message, sanitize_exception_message(error), suffix)
