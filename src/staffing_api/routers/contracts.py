"""Contracts router."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from staffing_api.dependencies import get_contract_service
from staffing_api.models.domain.user import CurrentUser
from staffing_api.models.dto.contract import (
    ContractCreate,
    ContractDetailResponse,
    ContractListResponse,
    ContractRenew,
    ContractResponse,
    ContractTerminate,
    ContractUpdate,
    RenewalEligibilityResponse,
)
from staffing_api.security.auth import get_current_user
from staffing_api.security.rate_limit import MUTATION_LIMIT, limiter
from staffing_api.services.contract_service import ContractService

router = APIRouter()


@router.get("/{firm_id}/contracts", response_model=ContractListResponse)
async def list_contracts(
    firm_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ContractService, Depends(get_contract_service)],
    contract_status: Annotated[str | None, Query(alias="status", max_length=50)] = None,
    contract_type: Annotated[str | None, Query(alias="type", max_length=50)] = None,
    employee_id: Annotated[UUID | None, Query(alias="employeeId")] = None,
    sort_by: Annotated[str | None, Query(alias="sortBy", max_length=50)] = None,
    sort_order: Annotated[str | None, Query(alias="sortOrder", max_length=4)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> ContractListResponse:
    """List contracts with filters, sorting and pagination."""
    return await service.list_contracts(
        user_id=current_user.id,
        firm_id=firm_id,
        status=contract_status,
        contract_type=contract_type,
        employee_id=employee_id,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


@router.post("/{firm_id}/contracts", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(MUTATION_LIMIT)
async def create_contract(
    request: Request,
    firm_id: UUID,
    body: ContractCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ContractService, Depends(get_contract_service)],
) -> ContractResponse:
    """Create a contract. Owners, admins and managers."""
    return await service.create_contract(current_user.id, firm_id, body, request=request)


# Registered before /{contract_id} so that "expiring" is not parsed as an id
@router.get("/{firm_id}/contracts/expiring", response_model=list[ContractResponse])
async def list_expiring_contracts(
    firm_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ContractService, Depends(get_contract_service)],
) -> list[ContractResponse]:
    """ACTIVE contracts inside their alert window, or already past their end date."""
    return await service.list_expiring(current_user.id, firm_id)


@router.get("/{firm_id}/contracts/{contract_id}", response_model=ContractDetailResponse)
async def get_contract(
    firm_id: UUID,
    contract_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ContractService, Depends(get_contract_service)],
) -> ContractDetailResponse:
    """Get a contract with its predecessor and successors."""
    return await service.get_contract(current_user.id, firm_id, contract_id)


@router.put("/{firm_id}/contracts/{contract_id}", response_model=ContractResponse)
@limiter.limit(MUTATION_LIMIT)
async def update_contract(
    request: Request,
    firm_id: UUID,
    contract_id: UUID,
    body: ContractUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ContractService, Depends(get_contract_service)],
) -> ContractResponse:
    """Update contract terms. Status is not changed."""
    return await service.update_contract(current_user.id, firm_id, contract_id, body, request=request)


@router.delete("/{firm_id}/contracts/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(MUTATION_LIMIT)
async def delete_contract(
    request: Request,
    firm_id: UUID,
    contract_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ContractService, Depends(get_contract_service)],
) -> None:
    """Delete a contract. Owners and admins only."""
    await service.delete_contract(current_user.id, firm_id, contract_id, request=request)


@router.get(
    "/{firm_id}/contracts/{contract_id}/renewal-eligibility",
    response_model=RenewalEligibilityResponse,
)
async def get_renewal_eligibility(
    firm_id: UUID,
    contract_id: UUID,
    start_date: Annotated[date, Query(alias="startDate")],
    end_date: Annotated[date, Query(alias="endDate")],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ContractService, Depends(get_contract_service)],
) -> RenewalEligibilityResponse:
    """Preview whether a renewal for the given period would be accepted."""
    return await service.get_renewal_eligibility(current_user.id, firm_id, contract_id, start_date, end_date)


@router.post(
    "/{firm_id}/contracts/{contract_id}/renew",
    response_model=ContractResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(MUTATION_LIMIT)
async def renew_contract(
    request: Request,
    firm_id: UUID,
    contract_id: UUID,
    body: ContractRenew,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ContractService, Depends(get_contract_service)],
) -> ContractResponse:
    """Renew a contract; returns the successor contract."""
    return await service.renew_contract(current_user.id, firm_id, contract_id, body, request=request)


@router.post("/{firm_id}/contracts/{contract_id}/terminate", response_model=ContractResponse)
@limiter.limit(MUTATION_LIMIT)
async def terminate_contract(
    request: Request,
    firm_id: UUID,
    contract_id: UUID,
    body: ContractTerminate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ContractService, Depends(get_contract_service)],
) -> ContractResponse:
    """Terminate a contract. Owners and admins only."""
    return await service.terminate_contract(current_user.id, firm_id, contract_id, body.reason, request=request)
