"""Calendar arithmetic used by the contract rules."""

from datetime import UTC, date, datetime

from dateutil.relativedelta import relativedelta


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def months_between(start: date, end: date) -> int:
    """Number of full calendar months from ``start`` to ``end``.

    Partial months are truncated toward zero, so 2024-01-15 to 2024-03-14
    is one month. Negative when ``end`` is before ``start``.
    """
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


def days_between(start: date, end: date) -> int:
    """Number of calendar days from ``start`` to ``end``."""
    return (end - start).days


def days_until(target: date | None, today: date) -> int | None:
    """Days remaining until ``target``; negative once it has passed."""
    if target is None:
        return None
    return days_between(today, target)


def utc_today() -> date:
    """Current date in UTC."""
    return utc_now().date()
