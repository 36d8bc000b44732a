"""Employee transfer DTOs."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field

from staffing_api.models.domain.contract import ContractType
from staffing_api.models.domain.transfer import TransferStatus
from staffing_api.models.dto.common import CamelModel, MoneyAmount, Pagination
from staffing_api.models.dto.contract import ContractResponse


class TransferCreate(CamelModel):
    """Request to move an employee to a sister firm."""

    employee_id: UUID
    from_firm_id: UUID | None = None
    to_firm_id: UUID
    client_id: UUID | None = None
    transfer_date: date
    effective_date: date
    reason: str = Field(min_length=1, max_length=2000)
    notes: str | None = Field(default=None, max_length=5000)


class TransferUpdate(CamelModel):
    """Partial update of a pending transfer."""

    transfer_date: date | None = None
    effective_date: date | None = None
    reason: str | None = Field(default=None, max_length=2000)
    notes: str | None = Field(default=None, max_length=5000)
    client_id: UUID | None = None


class ContractSeed(CamelModel):
    """Contract to open in the destination firm on approval."""

    type: ContractType = ContractType.CDD
    start_date: date
    end_date: date | None = None
    position: str | None = Field(default=None, max_length=255)
    salary: MoneyAmount | None = None
    working_hours: str | None = Field(default=None, max_length=100)


class TransferApprove(CamelModel):
    """Optional approval body."""

    create_new_contract: bool = False
    contract_data: ContractSeed | None = None


class TransferReject(CamelModel):
    """Request to reject a pending transfer."""

    reason: str = Field(default="", max_length=2000)


class TransferResponse(CamelModel):
    """Transfer response DTO."""

    id: UUID
    employee_id: UUID
    from_firm_id: UUID
    to_firm_id: UUID
    client_id: UUID | None = None
    transfer_date: date
    effective_date: date
    reason: str
    notes: str | None = None
    status: TransferStatus
    rejection_reason: str | None = None
    requested_by: UUID
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class TransferApproveResponse(TransferResponse):
    """Approved transfer, with the contract opened in the destination firm."""

    created_contract: ContractResponse | None = None


class TransferListResponse(CamelModel):
    """Paginated transfer list."""

    transfers: list[TransferResponse]
    pagination: Pagination
