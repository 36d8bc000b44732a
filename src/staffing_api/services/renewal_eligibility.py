"""Renewal eligibility rules for fixed-term and indefinite contracts.

Pure functions: nothing here touches the database, so the rules can be
evaluated for a real renewal or for a read-only preview alike.

Two limits apply:

* only a contract that lasted at most ``max_renewable_months`` calendar
  months can be renewed, whatever its type;
* for capped types (CDD, INTERIM, PRESTATION) the employee's cumulative
  time under capped contracts, plus the proposed period, must not exceed
  ``cumulative_cap_months``. Cumulative time is counted in days and
  converted with a fixed ``days_per_month`` (30), not calendar months.
  Existing fixtures depend on this approximation.
"""

from collections.abc import Iterable
from datetime import date
from typing import Any, Protocol
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from staffing_api.config import Settings
from staffing_api.models.domain.contract import (
    CAPPED_TYPES,
    CUMULATIVE_STATUSES,
    FINAL_STATUSES,
    ContractStatus,
)
from staffing_api.utils.dates import days_between, months_between


class ContractLike(Protocol):
    """Attributes the rules read from a contract."""

    id: UUID
    type: str
    status: str
    start_date: date
    end_date: date | None


class RenewalPolicy(BaseModel):
    """Statutory limits applied by the calculator."""

    model_config = ConfigDict(frozen=True)

    max_renewable_months: int = 12
    cumulative_cap_months: int = 24
    days_per_month: int = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> "RenewalPolicy":
        """Build the policy from application settings."""
        return cls(
            max_renewable_months=settings.max_renewable_contract_months,
            cumulative_cap_months=settings.cumulative_cap_months,
            days_per_month=settings.days_per_month,
        )


DEFAULT_POLICY = RenewalPolicy()


class EligibilityResult(BaseModel):
    """Outcome of a renewal eligibility check."""

    model_config = ConfigDict(frozen=True)

    is_eligible: bool
    reason: str | None = None
    current_duration_months: int
    # Only set for capped contract types
    current_cumulative_months: float | None = None
    proposed_cumulative_months: float | None = None
    remaining_months: float | None = None

    def error_details(self) -> dict[str, Any]:
        """Structured details returned with a rejected renewal."""
        details: dict[str, Any] = {"contractDurationMonths": self.current_duration_months}
        if self.current_cumulative_months is not None:
            details["currentDuration"] = self.current_cumulative_months
            details["proposedDuration"] = self.proposed_cumulative_months
            details["remainingMonths"] = self.remaining_months
        return details


def cumulative_days(contract: ContractLike, history: Iterable[ContractLike]) -> int:
    """Total days spent under contracts counted toward the cumulative cap.

    Counted contracts are the capped-type contracts of the employee that are
    ACTIVE or RENEWED, plus ``contract`` itself whatever its status.
    Contracts missing either date contribute nothing.

    Args:
        contract: Contract being renewed
        history: Contracts of the same employee (may include ``contract``)

    Returns:
        Sum of ``end_date - start_date`` in days
    """
    counted: dict[UUID, ContractLike] = {}
    for candidate in history:
        if candidate.type not in CAPPED_TYPES:
            continue
        if candidate.status in CUMULATIVE_STATUSES or candidate.id == contract.id:
            counted[candidate.id] = candidate
    if contract.type in CAPPED_TYPES:
        counted.setdefault(contract.id, contract)

    return sum(
        days_between(c.start_date, c.end_date)
        for c in counted.values()
        if c.start_date is not None and c.end_date is not None
    )


def evaluate(
    contract: ContractLike,
    proposed_start: date,
    proposed_end: date,
    history: Iterable[ContractLike],
    today: date,
    policy: RenewalPolicy = DEFAULT_POLICY,
) -> EligibilityResult:
    """Decide whether a contract may be renewed for the proposed period.

    Args:
        contract: Contract to renew
        proposed_start: Start date of the successor contract
        proposed_end: End date of the successor contract
        history: Contracts of the same employee across all firms
        today: Reference date, used when the contract has no end date
        policy: Limits to apply

    Returns:
        EligibilityResult; ``reason`` is set when the renewal is refused
    """
    current_duration = months_between(contract.start_date, contract.end_date or today)

    if contract.status in FINAL_STATUSES:
        return EligibilityResult(
            is_eligible=False,
            reason="Cannot renew a terminated or expired contract",
            current_duration_months=current_duration,
        )

    if contract.status == ContractStatus.RENEWED:
        return EligibilityResult(
            is_eligible=False,
            reason="Contract has already been renewed",
            current_duration_months=current_duration,
        )

    if current_duration > policy.max_renewable_months:
        return EligibilityResult(
            is_eligible=False,
            reason=(
                f"Cannot renew contracts longer than {policy.max_renewable_months} months. "
                f"Contract must be {policy.max_renewable_months} months or less "
                "to be eligible for renewal."
            ),
            current_duration_months=current_duration,
        )

    if contract.type not in CAPPED_TYPES:
        return EligibilityResult(is_eligible=True, current_duration_months=current_duration)

    total_days = cumulative_days(contract, history)
    new_days = days_between(proposed_start, proposed_end)

    total_months = total_days / policy.days_per_month
    proposed_months = (total_days + new_days) / policy.days_per_month

    if proposed_months > policy.cumulative_cap_months:
        return EligibilityResult(
            is_eligible=False,
            reason=(
                "Cannot renew: Total cumulative duration would exceed "
                f"{policy.cumulative_cap_months} months. "
                f"Current: {total_months:.1f} months, "
                f"After renewal: {proposed_months:.1f} months."
            ),
            current_duration_months=current_duration,
            current_cumulative_months=total_months,
            proposed_cumulative_months=proposed_months,
            # Longest renewal the employee could still get
            remaining_months=policy.cumulative_cap_months - total_months,
        )

    return EligibilityResult(
        is_eligible=True,
        current_duration_months=current_duration,
        current_cumulative_months=total_months,
        proposed_cumulative_months=proposed_months,
        # Headroom left once this renewal is granted
        remaining_months=policy.cumulative_cap_months - proposed_months,
    )
