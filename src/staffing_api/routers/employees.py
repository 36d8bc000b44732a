"""Employee contract history router."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from staffing_api.dependencies import get_contract_service
from staffing_api.models.domain.user import CurrentUser
from staffing_api.models.dto.contract import ContractResponse
from staffing_api.security.auth import get_current_user
from staffing_api.services.contract_service import ContractService

router = APIRouter()


@router.get("/{firm_id}/employees/{employee_id}/contracts", response_model=list[ContractResponse])
async def list_employee_contracts(
    firm_id: UUID,
    employee_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ContractService, Depends(get_contract_service)],
) -> list[ContractResponse]:
    """Contract history of an employee in this firm, newest first."""
    return await service.list_employee_contracts(current_user.id, firm_id, employee_id)
