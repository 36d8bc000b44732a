"""Tests for the renewal eligibility rules."""

from dataclasses import dataclass, field
from datetime import date
from uuid import UUID, uuid4

import pytest

from staffing_api.services.renewal_eligibility import (
    RenewalPolicy,
    cumulative_days,
    evaluate,
)

TODAY = date(2024, 6, 1)


@dataclass
class FakeContract:
    type: str
    status: str
    start_date: date
    end_date: date | None
    id: UUID = field(default_factory=uuid4)


def cdd(start: date, end: date, status: str = "ACTIVE") -> FakeContract:
    return FakeContract(type="CDD", status=status, start_date=start, end_date=end)


class TestCumulativeCap:
    """Cumulative time under capped contracts, counted in 30-day months."""

    def test_nine_month_contract_renewed_for_six_months_is_eligible(self):
        contract = cdd(date(2024, 1, 1), date(2024, 10, 1))

        result = evaluate(contract, date(2024, 10, 1), date(2025, 4, 1), [contract], TODAY)

        assert result.is_eligible
        assert result.reason is None
        assert result.current_duration_months == 9
        assert result.current_cumulative_months == pytest.approx(274 / 30)
        assert result.proposed_cumulative_months == pytest.approx(456 / 30)
        assert result.remaining_months == pytest.approx(8.8)

    def test_employee_at_cap_cannot_renew(self):
        first = cdd(date(2022, 1, 1), date(2022, 12, 27), status="RENEWED")
        contract = cdd(date(2022, 12, 27), date(2023, 12, 22))

        result = evaluate(contract, date(2023, 12, 22), date(2024, 1, 22), [first, contract], TODAY)

        assert not result.is_eligible
        assert "24 months" in result.reason
        assert result.current_cumulative_months == pytest.approx(24.0)
        assert result.remaining_months <= 0

    def test_thirty_day_month_approximation_is_kept(self):
        """Exactly 24 calendar months is 730 days, i.e. 24.33 counted months."""
        first = cdd(date(2022, 1, 1), date(2023, 1, 1), status="RENEWED")
        contract = cdd(date(2023, 1, 1), date(2023, 12, 1))

        result = evaluate(contract, date(2023, 12, 1), date(2024, 1, 1), [first, contract], TODAY)

        assert not result.is_eligible
        assert result.proposed_cumulative_months == pytest.approx(730 / 30)

    def test_policy_cap_is_configurable(self):
        first = cdd(date(2022, 1, 1), date(2022, 12, 27), status="RENEWED")
        contract = cdd(date(2022, 12, 27), date(2023, 12, 22))
        policy = RenewalPolicy(cumulative_cap_months=36)

        result = evaluate(
            contract, date(2023, 12, 22), date(2024, 1, 22), [first, contract], TODAY, policy
        )

        assert result.is_eligible

    def test_terminated_and_indefinite_contracts_do_not_count(self):
        contract = cdd(date(2024, 1, 1), date(2024, 10, 1))
        history = [
            cdd(date(2020, 1, 1), date(2021, 12, 1), status="TERMINATED"),
            FakeContract(type="CDI", status="RENEWED", start_date=date(2018, 1, 1), end_date=date(2020, 1, 1)),
            contract,
        ]

        assert cumulative_days(contract, history) == 274

    def test_contract_being_renewed_counts_even_when_missing_from_history(self):
        contract = cdd(date(2024, 1, 1), date(2024, 10, 1))

        assert cumulative_days(contract, []) == 274

    @pytest.mark.parametrize("contract_type", ["INTERIM", "PRESTATION"])
    def test_other_capped_types(self, contract_type):
        first = FakeContract(
            type=contract_type, status="RENEWED", start_date=date(2022, 1, 1), end_date=date(2022, 12, 27)
        )
        contract = FakeContract(
            type=contract_type, status="ACTIVE", start_date=date(2022, 12, 27), end_date=date(2023, 12, 22)
        )

        result = evaluate(contract, date(2023, 12, 22), date(2024, 1, 22), [first, contract], TODAY)

        assert not result.is_eligible


class TestDurationLimit:
    """A contract longer than 12 months is never renewable."""

    @pytest.mark.parametrize("contract_type", ["CDD", "CDI", "INTERIM", "STAGE", "PRESTATION"])
    def test_fourteen_month_contract_is_refused(self, contract_type):
        contract = FakeContract(
            type=contract_type, status="ACTIVE", start_date=date(2023, 1, 1), end_date=date(2024, 3, 1)
        )

        result = evaluate(contract, date(2024, 3, 1), date(2024, 4, 1), [contract], TODAY)

        assert not result.is_eligible
        assert result.current_duration_months == 14
        assert "12 months" in result.reason
        assert result.error_details() == {"contractDurationMonths": 14}

    def test_twelve_months_is_still_renewable(self):
        contract = cdd(date(2023, 1, 1), date(2024, 1, 1))

        result = evaluate(contract, date(2024, 1, 1), date(2024, 4, 1), [contract], TODAY)

        assert result.current_duration_months == 12
        assert result.is_eligible

    def test_open_ended_contract_measured_until_today(self):
        contract = FakeContract(type="CDI", status="ACTIVE", start_date=date(2023, 1, 1), end_date=None)

        result = evaluate(contract, date(2024, 6, 1), date(2024, 12, 1), [contract], TODAY)

        assert result.current_duration_months == 17
        assert not result.is_eligible


class TestStatusGate:
    @pytest.mark.parametrize("status", ["TERMINATED", "EXPIRED"])
    def test_closed_contracts_are_refused(self, status):
        contract = cdd(date(2024, 1, 1), date(2024, 4, 1), status=status)

        result = evaluate(contract, date(2024, 4, 1), date(2024, 6, 1), [contract], TODAY)

        assert not result.is_eligible
        assert result.reason == "Cannot renew a terminated or expired contract"

    def test_renewed_contract_is_refused(self):
        contract = cdd(date(2024, 1, 1), date(2024, 4, 1), status="RENEWED")

        result = evaluate(contract, date(2024, 4, 1), date(2024, 6, 1), [contract], TODAY)

        assert not result.is_eligible
        assert result.reason == "Contract has already been renewed"


class TestUncappedTypes:
    def test_cdi_skips_cumulative_check(self):
        contract = FakeContract(
            type="CDI", status="ACTIVE", start_date=date(2024, 1, 1), end_date=date(2024, 6, 1)
        )

        result = evaluate(contract, date(2024, 6, 1), date(2030, 6, 1), [contract], TODAY)

        assert result.is_eligible
        assert result.current_cumulative_months is None
        assert result.remaining_months is None


def test_error_details_use_public_keys():
    first = cdd(date(2022, 1, 1), date(2022, 12, 27), status="RENEWED")
    contract = cdd(date(2022, 12, 27), date(2023, 12, 22))

    details = evaluate(
        contract, date(2023, 12, 22), date(2024, 1, 22), [first, contract], TODAY
    ).error_details()

    assert set(details) == {"contractDurationMonths", "currentDuration", "proposedDuration", "remainingMonths"}
    assert details["remainingMonths"] == pytest.approx(0.0)
