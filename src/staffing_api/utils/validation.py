"""Normalization of query parameters and free-text fields.

Sort columns and filters end up in ORDER BY and WHERE clauses, so they
are only accepted from fixed whitelists.
"""

import re

# Inputs are truncated to these lengths before any comparison
MAX_TEXT_LENGTH = 2000
MAX_STATUS_LENGTH = 50
MAX_SORT_BY_LENGTH = 50

# Control characters except tab, newline and carriage return
CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def validate_sort_by(sort_by: str | None, allowed_columns: set[str], default: str) -> str:
    """Return ``sort_by`` when it names a sortable column, else ``default``."""
    if sort_by and sort_by[:MAX_SORT_BY_LENGTH] in allowed_columns:
        return sort_by
    return default


def validate_sort_order(sort_order: str | None, default: str = "desc") -> str:
    """Validate sort direction.

    Args:
        sort_order: Raw direction
        default: Direction used when the input is not asc/desc

    Returns:
        "asc" or "desc"
    """
    if sort_order is None:
        return default
    sort_order = sort_order.strip().lower()
    return sort_order if sort_order in ("asc", "desc") else default


def sanitize_status(status: str | None, allowed_values: set[str] | None = None) -> str | None:
    """Normalize an enum filter such as ``?status=active``.

    Stored codes are upper-case, so the input is upper-cased first. Values
    outside ``allowed_values`` are dropped rather than rejected.

    Args:
        status: Query parameter as received
        allowed_values: Accepted codes, or None to accept any

    Returns:
        The code, or None when the filter should not apply
    """
    if status is None:
        return None

    status = status[:MAX_STATUS_LENGTH].strip().upper()

    if not status:
        return None

    if allowed_values and status not in allowed_values:
        return None

    return status


def clean_text(value: str | None, max_length: int = MAX_TEXT_LENGTH) -> str | None:
    """Strip control characters and surrounding whitespace from free text.

    Args:
        value: Raw text such as a termination or transfer reason
        max_length: Length the cleaned text is cut to

    Returns:
        Cleaned text, or None if nothing printable remains
    """
    if value is None:
        return None
    value = CONTROL_CHARS_PATTERN.sub("", value)[:max_length].strip()
    return value or None
