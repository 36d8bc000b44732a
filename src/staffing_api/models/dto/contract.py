"""Contract DTOs."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field

from staffing_api.models.domain.contract import ContractStatus, ContractType
from staffing_api.models.dto.common import CamelModel, DecimalString, MoneyAmount, Pagination


class ContractCreate(CamelModel):
    """Request to create a contract."""

    employee_id: UUID
    type: ContractType
    start_date: date
    end_date: date | None = None
    client_id: UUID | None = None
    client_firm_id: UUID | None = None
    position: str | None = Field(default=None, max_length=255)
    salary: MoneyAmount | None = None
    working_hours: str | None = Field(default=None, max_length=100)
    trial_period_end: date | None = None
    notes: str | None = Field(default=None, max_length=5000)
    alert_threshold: int | None = Field(default=None, ge=0, le=365)


class ContractUpdate(CamelModel):
    """Partial update of a contract.

    Only fields present in the request body are applied; status is never
    changed through this DTO.
    """

    type: ContractType | None = None
    start_date: date | None = None
    end_date: date | None = None
    client_id: UUID | None = None
    client_firm_id: UUID | None = None
    position: str | None = Field(default=None, max_length=255)
    salary: MoneyAmount | None = None
    working_hours: str | None = Field(default=None, max_length=100)
    trial_period_end: date | None = None
    notes: str | None = Field(default=None, max_length=5000)
    alert_threshold: int | None = Field(default=None, ge=0, le=365)


class ContractRenew(CamelModel):
    """Request to renew a contract into a successor."""

    start_date: date
    end_date: date
    client_id: UUID | None = None
    client_firm_id: UUID | None = None
    position: str | None = Field(default=None, max_length=255)
    salary: MoneyAmount | None = None
    working_hours: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=5000)
    alert_threshold: int | None = Field(default=None, ge=0, le=365)


class ContractTerminate(CamelModel):
    """Request to terminate a contract."""

    reason: str = Field(default="", max_length=2000)


class ContractSummary(CamelModel):
    """Compact view of a related contract."""

    id: UUID
    type: ContractType
    status: ContractStatus
    start_date: date
    end_date: date | None = None


class ContractResponse(CamelModel):
    """Contract response DTO."""

    id: UUID
    firm_id: UUID
    employee_id: UUID
    client_id: UUID | None = None
    client_firm_id: UUID | None = None
    type: ContractType
    status: ContractStatus
    start_date: date
    end_date: date | None = None
    renewed_from_id: UUID | None = None
    is_active: bool
    position: str | None = None
    salary: DecimalString | None = None
    working_hours: str | None = None
    trial_period_end: date | None = None
    notes: str | None = None
    alert_threshold: int
    termination_date: date | None = None
    termination_reason: str | None = None
    created_at: datetime
    updated_at: datetime
    # Derived on read
    is_expired: bool = False
    days_until_expiry: int | None = None


class ContractDetailResponse(ContractResponse):
    """Contract with its renewal neighbours."""

    renewed_from: ContractSummary | None = None
    renewals: list[ContractSummary] = []


class ContractListResponse(CamelModel):
    """Paginated contract list."""

    contracts: list[ContractResponse]
    pagination: Pagination


class RenewalEligibilityResponse(CamelModel):
    """Result of the renewal eligibility check."""

    contract_id: UUID
    is_eligible: bool
    reason: str | None = None
    current_duration_months: int
    current_cumulative_months: float | None = None
    proposed_cumulative_months: float | None = None
    remaining_months: float | None = None
