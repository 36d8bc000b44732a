"""Employee transfers router."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Request, status

from staffing_api.dependencies import get_transfer_service
from staffing_api.models.domain.transfer import TransferDirection
from staffing_api.models.domain.user import CurrentUser
from staffing_api.models.dto.transfer import (
    TransferApprove,
    TransferApproveResponse,
    TransferCreate,
    TransferListResponse,
    TransferReject,
    TransferResponse,
    TransferUpdate,
)
from staffing_api.security.auth import get_current_user
from staffing_api.security.rate_limit import MUTATION_LIMIT, limiter
from staffing_api.services.transfer_service import TransferService

router = APIRouter()


@router.get("/{firm_id}/transfers", response_model=TransferListResponse)
async def list_transfers(
    firm_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[TransferService, Depends(get_transfer_service)],
    transfer_status: Annotated[str | None, Query(alias="status", max_length=50)] = None,
    direction: TransferDirection | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> TransferListResponse:
    """List incoming and/or outgoing transfers of the firm."""
    return await service.list_transfers(
        user_id=current_user.id,
        firm_id=firm_id,
        status=transfer_status,
        direction=direction,
        page=page,
        limit=limit,
    )


@router.post("/{firm_id}/transfers", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(MUTATION_LIMIT)
async def request_transfer(
    request: Request,
    firm_id: UUID,
    body: TransferCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[TransferService, Depends(get_transfer_service)],
) -> TransferResponse:
    """Request a transfer of one of the firm's employees to a sister firm."""
    return await service.request_transfer(current_user.id, firm_id, body, request=request)


@router.get("/{firm_id}/transfers/{transfer_id}", response_model=TransferResponse)
async def get_transfer(
    firm_id: UUID,
    transfer_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[TransferService, Depends(get_transfer_service)],
) -> TransferResponse:
    """Get a transfer; visible to both the source and the destination firm."""
    return await service.get_transfer(current_user.id, firm_id, transfer_id)


@router.put("/{firm_id}/transfers/{transfer_id}", response_model=TransferResponse)
@limiter.limit(MUTATION_LIMIT)
async def update_transfer(
    request: Request,
    firm_id: UUID,
    transfer_id: UUID,
    body: TransferUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[TransferService, Depends(get_transfer_service)],
) -> TransferResponse:
    """Edit a pending transfer. Source firm only."""
    return await service.update_transfer(current_user.id, firm_id, transfer_id, body, request=request)


@router.delete("/{firm_id}/transfers/{transfer_id}", response_model=TransferResponse)
@limiter.limit(MUTATION_LIMIT)
async def cancel_transfer(
    request: Request,
    firm_id: UUID,
    transfer_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[TransferService, Depends(get_transfer_service)],
) -> TransferResponse:
    """Cancel a pending or rejected transfer. The record is kept as CANCELLED."""
    return await service.cancel_transfer(current_user.id, firm_id, transfer_id, request=request)


@router.post("/{firm_id}/transfers/{transfer_id}/approve", response_model=TransferApproveResponse)
@limiter.limit(MUTATION_LIMIT)
async def approve_transfer(
    request: Request,
    firm_id: UUID,
    transfer_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[TransferService, Depends(get_transfer_service)],
    body: Annotated[TransferApprove | None, Body()] = None,
) -> TransferApproveResponse:
    """Approve a pending transfer. Destination firm only; the body is optional.

    With ``createNewContract`` set, an ACTIVE contract is opened in this firm
    in the same transaction. An employee holds one ACTIVE contract at a time,
    so the seed is refused with 422 while the source-firm contract is still
    ACTIVE. In that case approve without a seed and create the contract once
    the transfer is completed.
    """
    return await service.approve_transfer(current_user.id, firm_id, transfer_id, body, request=request)


@router.post("/{firm_id}/transfers/{transfer_id}/reject", response_model=TransferResponse)
@limiter.limit(MUTATION_LIMIT)
async def reject_transfer(
    request: Request,
    firm_id: UUID,
    transfer_id: UUID,
    body: TransferReject,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[TransferService, Depends(get_transfer_service)],
) -> TransferResponse:
    """Reject a pending transfer. Destination firm only; a reason is required."""
    return await service.reject_transfer(current_user.id, firm_id, transfer_id, body.reason, request=request)


@router.post("/{firm_id}/transfers/{transfer_id}/complete", response_model=TransferResponse)
@limiter.limit(MUTATION_LIMIT)
async def complete_transfer(
    request: Request,
    firm_id: UUID,
    transfer_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[TransferService, Depends(get_transfer_service)],
) -> TransferResponse:
    """Complete an approved transfer once its effective date is reached."""
    return await service.complete_transfer(current_user.id, firm_id, transfer_id, request=request)
