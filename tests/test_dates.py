"""Tests for calendar helpers."""

from datetime import date

import pytest

from staffing_api.models.domain.contract import is_expired, requires_end_date
from staffing_api.utils.dates import days_between, days_until, months_between


class TestMonthsBetween:
    """Full calendar months between two dates."""

    @pytest.mark.parametrize(
        ("start", "end", "expected"),
        [
            (date(2024, 1, 1), date(2024, 10, 1), 9),
            (date(2024, 10, 1), date(2025, 4, 1), 6),
            (date(2023, 1, 1), date(2024, 3, 1), 14),
            (date(2024, 1, 15), date(2024, 3, 14), 1),
            (date(2024, 1, 1), date(2024, 1, 1), 0),
        ],
    )
    def test_truncates_partial_months(self, start, end, expected):
        assert months_between(start, end) == expected

    def test_negative_when_end_before_start(self):
        assert months_between(date(2024, 6, 1), date(2024, 3, 1)) == -3


class TestDays:
    def test_days_between_counts_calendar_days(self):
        assert days_between(date(2024, 1, 1), date(2024, 10, 1)) == 274

    def test_days_until_none_for_open_ended(self):
        assert days_until(None, date(2024, 1, 1)) is None

    def test_days_until_negative_once_passed(self):
        assert days_until(date(2024, 1, 1), date(2024, 1, 11)) == -10


class TestDerivedExpiry:
    """EXPIRED is never stored; it is read from the end date."""

    def test_active_contract_past_end_date_is_expired(self):
        assert is_expired("ACTIVE", date(2024, 1, 1), date(2024, 1, 2))

    def test_end_date_today_is_not_expired(self):
        assert not is_expired("ACTIVE", date(2024, 1, 2), date(2024, 1, 2))

    @pytest.mark.parametrize("status", ["RENEWED", "TERMINATED"])
    def test_only_active_contracts_expire(self, status):
        assert not is_expired(status, date(2024, 1, 1), date(2024, 6, 1))

    def test_open_ended_contract_never_expires(self):
        assert not is_expired("ACTIVE", None, date(2030, 1, 1))


@pytest.mark.parametrize(
    ("contract_type", "required"),
    [("CDD", True), ("INTERIM", True), ("PRESTATION", True), ("CDI", False), ("STAGE", False)],
)
def test_end_date_requirement_by_type(contract_type, required):
    assert requires_end_date(contract_type) is required
