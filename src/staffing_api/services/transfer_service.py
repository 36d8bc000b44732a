"""Inter-firm transfer workflow service."""

import logging
from collections.abc import Callable
from datetime import date
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from staffing_api.config import Settings, get_settings
from staffing_api.database import atomic
from staffing_api.exceptions import (
    ClientNotFoundError,
    ConcurrentModificationError,
    DataIntegrityError,
    EffectiveDateNotReachedError,
    EmployeeNotFoundError,
    EmployeeNotInSourceFirmError,
    FirmNotFoundError,
    HoldingMismatchError,
    IllegalTransitionError,
    MissingReasonError,
    PendingTransferExistsError,
    TransferNotFoundError,
    ValidationError,
)
from staffing_api.models.domain.contract import ContractStatus
from staffing_api.models.domain.membership import ADMINS, ANY_MEMBER, MANAGERS
from staffing_api.models.domain.transfer import (
    TransferAction,
    TransferDirection,
    TransferStatus,
    next_status,
)
from staffing_api.models.dto.common import Pagination
from staffing_api.models.dto.transfer import (
    TransferApprove,
    TransferApproveResponse,
    TransferCreate,
    TransferListResponse,
    TransferResponse,
    TransferUpdate,
)
from staffing_api.models.orm.employee_transfer import EmployeeTransferORM
from staffing_api.repositories.contract_repository import ContractRepository
from staffing_api.repositories.employee_repository import EmployeeRepository
from staffing_api.repositories.firm_repository import ClientRepository, FirmRepository
from staffing_api.repositories.transfer_repository import TransferRepository
from staffing_api.services.access_service import AccessService
from staffing_api.services.audit_service import (
    AuditAction,
    AuditService,
    EntityType,
    to_json_value,
    transfer_snapshot,
)
from staffing_api.services.contract_service import ContractService
from staffing_api.utils.dates import utc_now, utc_today
from staffing_api.utils.db_errors import is_unique_violation
from staffing_api.utils.validation import clean_text, sanitize_status

logger = logging.getLogger(__name__)

# Fields a pending transfer update may touch
UPDATABLE_FIELDS = ("transfer_date", "effective_date", "reason", "notes", "client_id")


def termination_reason_for(transfer_id: UUID) -> str:
    """Reason recorded on contracts closed by a completed transfer."""
    return f"Employee transferred to another firm (Transfer #{transfer_id})"


def seed_notes_for(transfer_id: UUID) -> str:
    """Notes recorded on a contract opened by a transfer approval."""
    return f"Contract created from transfer {transfer_id}"


class TransferService:
    """Service for the employee transfer workflow.

    PENDING -> APPROVED -> COMPLETED, PENDING -> REJECTED -> CANCELLED and
    PENDING -> CANCELLED. Each step runs in one transaction with its audit
    entry.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        today: Callable[[], date] = utc_today,
    ) -> None:
        """Initialize service with database session.

        Args:
            session: Database session
            settings: Application settings (defaults to the cached instance)
            today: Clock returning the current date
        """
        self.session = session
        self.settings = settings or get_settings()
        self.today = today
        self.transfer_repo = TransferRepository(session)
        self.contract_repo = ContractRepository(session)
        self.employee_repo = EmployeeRepository(session)
        self.client_repo = ClientRepository(session)
        self.firm_repo = FirmRepository(session)
        self.access = AccessService(session)
        self.audit_service = AuditService(session)
        self.contract_service = ContractService(session, settings=self.settings, today=today)

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_transfers(
        self,
        user_id: UUID,
        firm_id: UUID,
        status: str | None = None,
        direction: TransferDirection | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> TransferListResponse:
        """List transfers in which the firm is source or destination.

        Args:
            user_id: Acting user
            firm_id: Firm UUID
            status: Status filter; unknown values are ignored
            direction: ``in``, ``out`` or None for both
            page: Page number, starting at 1
            limit: Page size, capped at max_page_size

        Returns:
            TransferListResponse, newest first
        """
        await self.access.require(user_id, firm_id, ANY_MEMBER)

        page = max(page, 1)
        limit = min(max(limit or self.settings.default_page_size, 1), self.settings.max_page_size)

        transfers, total = await self.transfer_repo.list_paged(
            firm_id=firm_id,
            status=sanitize_status(status, {s.value for s in TransferStatus}),
            direction=direction,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return TransferListResponse(
            transfers=[TransferResponse.model_validate(t) for t in transfers],
            pagination=Pagination.build(total=total, page=page, limit=limit),
        )

    async def get_transfer(self, user_id: UUID, firm_id: UUID, transfer_id: UUID) -> TransferResponse:
        """Get a transfer visible to the firm (either side).

        Raises:
            TransferNotFoundError: If the firm is not a party to the transfer
        """
        await self.access.require(user_id, firm_id, ANY_MEMBER)
        transfer = await self._get_for_firm(transfer_id, firm_id)
        return TransferResponse.model_validate(transfer)

    # =========================================================================
    # Workflow
    # =========================================================================

    async def request_transfer(
        self,
        user_id: UUID,
        firm_id: UUID,
        data: TransferCreate,
        request: Request | None = None,
    ) -> TransferResponse:
        """Request moving an employee from the firm to a sister firm.

        Args:
            user_id: Acting user, privileged in the source firm
            firm_id: Source firm UUID
            data: Transfer request
            request: HTTP request for audit logging

        Returns:
            The PENDING transfer

        Raises:
            EmployeeNotFoundError: If the employee is not in the source firm
            FirmNotFoundError: If the destination firm does not exist
            HoldingMismatchError: If the firms belong to different holdings
            PendingTransferExistsError: If the employee already has a PENDING transfer
        """
        async with atomic(self.session):
            await self.access.require(user_id, firm_id, MANAGERS)

            if data.from_firm_id is not None and data.from_firm_id != firm_id:
                raise ValidationError(
                    "Transfers must be requested by the source firm",
                    {"from_firm_id": str(data.from_firm_id), "firm_id": str(firm_id)},
                )
            if data.to_firm_id == firm_id:
                raise ValidationError(
                    "Source and destination firms must differ",
                    {"to_firm_id": str(data.to_firm_id)},
                )
            reason = clean_text(data.reason)
            if not reason:
                raise MissingReasonError("transfer reason")

            employee = await self.employee_repo.get_in_firm(data.employee_id, firm_id, for_update=True)
            if employee is None:
                raise EmployeeNotFoundError(data.employee_id)

            from_firm, to_firm = await self.firm_repo.get_pair(firm_id, data.to_firm_id)
            if from_firm is None:
                raise FirmNotFoundError(firm_id)
            if to_firm is None:
                raise FirmNotFoundError(data.to_firm_id)
            if from_firm.holding_id != to_firm.holding_id:
                logger.info("Transfer refused: firms %s and %s are in different holdings", firm_id, data.to_firm_id)
                raise HoldingMismatchError(firm_id, data.to_firm_id)

            pending = await self.transfer_repo.get_pending_for_employee(data.employee_id)
            if pending is not None:
                logger.info("Transfer refused: employee=%s already has a pending transfer", data.employee_id)
                raise PendingTransferExistsError(data.employee_id, pending.id)

            await self._check_client(data.client_id, data.to_firm_id)

            transfer = await self._insert(
                employee_id=data.employee_id,
                from_firm_id=firm_id,
                to_firm_id=data.to_firm_id,
                client_id=data.client_id,
                transfer_date=data.transfer_date,
                effective_date=data.effective_date,
                reason=reason,
                notes=clean_text(data.notes, max_length=5000),
                status=TransferStatus.PENDING.value,
                requested_by=user_id,
            )

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.CREATE,
                entity=EntityType.EMPLOYEE_TRANSFER,
                entity_id=transfer.id,
                actor_id=user_id,
                metadata={
                    "employeeId": transfer.employee_id,
                    "fromFirmId": transfer.from_firm_id,
                    "toFirmId": transfer.to_firm_id,
                    "reason": transfer.reason,
                },
                request=request,
            )

        logger.info(
            "Transfer requested: id=%s employee=%s from=%s to=%s",
            transfer.id,
            transfer.employee_id,
            transfer.from_firm_id,
            transfer.to_firm_id,
        )
        return TransferResponse.model_validate(transfer)

    async def update_transfer(
        self,
        user_id: UUID,
        firm_id: UUID,
        transfer_id: UUID,
        data: TransferUpdate,
        request: Request | None = None,
    ) -> TransferResponse:
        """Edit a PENDING transfer from its source firm.

        Raises:
            TransferNotFoundError: If the firm is not the transfer's source
            IllegalTransitionError: If the transfer is no longer PENDING
        """
        async with atomic(self.session):
            await self.access.require(user_id, firm_id, MANAGERS)
            transfer = await self._get_for_firm(transfer_id, firm_id, TransferDirection.OUT, for_update=True)
            self._transition(transfer, TransferAction.UPDATE)

            patch = {k: v for k, v in data.model_dump(exclude_unset=True).items() if k in UPDATABLE_FIELDS}
            for required in ("transfer_date", "effective_date"):
                if required in patch and patch[required] is None:
                    del patch[required]
            if "reason" in patch:
                patch["reason"] = clean_text(patch["reason"])
                if not patch["reason"]:
                    raise MissingReasonError("transfer reason")
            if "notes" in patch:
                patch["notes"] = clean_text(patch["notes"], max_length=5000)
            if "client_id" in patch:
                await self._check_client(patch["client_id"], transfer.to_firm_id)

            before = {key: getattr(transfer, key) for key in patch}
            await self.transfer_repo.update(transfer, **patch)

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.UPDATE,
                entity=EntityType.EMPLOYEE_TRANSFER,
                entity_id=transfer.id,
                actor_id=user_id,
                metadata={"before": to_json_value(before), "after": to_json_value(patch)},
                request=request,
            )

        logger.info("Transfer updated: id=%s fields=%s", transfer.id, sorted(patch))
        return TransferResponse.model_validate(transfer)

    async def approve_transfer(
        self,
        user_id: UUID,
        firm_id: UUID,
        transfer_id: UUID,
        data: TransferApprove | None = None,
        request: Request | None = None,
    ) -> TransferApproveResponse:
        """Approve a PENDING transfer from its destination firm.

        When ``data.create_new_contract`` is set, an ACTIVE contract is opened
        in the destination firm in the same transaction. It obeys the same
        rules as contract creation, including the single ACTIVE contract per
        employee.

        Args:
            user_id: Acting user, privileged in the destination firm
            firm_id: Destination firm UUID
            transfer_id: Transfer UUID
            data: Optional contract seed
            request: HTTP request for audit logging

        Returns:
            The APPROVED transfer and the created contract, if any

        Raises:
            TransferNotFoundError: If the firm is not the transfer's destination
            IllegalTransitionError: If the transfer is not PENDING
        """
        data = data or TransferApprove()

        async with atomic(self.session):
            await self.access.require(user_id, firm_id, MANAGERS)
            transfer = await self._get_for_firm(transfer_id, firm_id, TransferDirection.IN, for_update=True)
            new_status = self._transition(transfer, TransferAction.APPROVE)

            await self.transfer_repo.update(
                transfer,
                status=new_status.value,
                approved_by=user_id,
                approved_at=utc_now(),
            )

            created_contract = None
            if data.create_new_contract:
                if data.contract_data is None:
                    raise ValidationError(
                        "Contract data is required to create a contract on approval",
                        {"missing": ["contract_data"]},
                    )
                created_contract = await self.contract_service.open_contract(
                    firm_id=transfer.to_firm_id,
                    employee_id=transfer.employee_id,
                    values={
                        **data.contract_data.model_dump(),
                        "client_id": transfer.client_id,
                        "notes": seed_notes_for(transfer.id),
                    },
                    employee_firm_id=transfer.from_firm_id,
                )

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.APPROVE,
                entity=EntityType.EMPLOYEE_TRANSFER,
                entity_id=transfer.id,
                actor_id=user_id,
                metadata={
                    "employeeId": transfer.employee_id,
                    "fromFirmId": transfer.from_firm_id,
                    "toFirmId": transfer.to_firm_id,
                    "createdContractId": created_contract.id if created_contract else None,
                },
                request=request,
            )

        logger.info("Transfer approved: id=%s contract_created=%s", transfer.id, created_contract is not None)
        return TransferApproveResponse(
            **TransferResponse.model_validate(transfer).model_dump(),
            created_contract=(
                self.contract_service.build_response(created_contract) if created_contract else None
            ),
        )

    async def reject_transfer(
        self,
        user_id: UUID,
        firm_id: UUID,
        transfer_id: UUID,
        reason: str | None,
        request: Request | None = None,
    ) -> TransferResponse:
        """Reject a PENDING transfer from its destination firm.

        Raises:
            MissingReasonError: If the reason is empty
            TransferNotFoundError: If the firm is not the transfer's destination
            IllegalTransitionError: If the transfer is not PENDING
        """
        async with atomic(self.session):
            await self.access.require(user_id, firm_id, MANAGERS)
            cleaned_reason = clean_text(reason)
            if not cleaned_reason:
                raise MissingReasonError("rejection reason")

            transfer = await self._get_for_firm(transfer_id, firm_id, TransferDirection.IN, for_update=True)
            new_status = self._transition(transfer, TransferAction.REJECT)

            await self.transfer_repo.update(
                transfer,
                status=new_status.value,
                approved_by=user_id,
                approved_at=utc_now(),
                rejection_reason=cleaned_reason,
            )

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.REJECT,
                entity=EntityType.EMPLOYEE_TRANSFER,
                entity_id=transfer.id,
                actor_id=user_id,
                metadata={"employeeId": transfer.employee_id, "reason": cleaned_reason},
                request=request,
            )

        logger.info("Transfer rejected: id=%s", transfer.id)
        return TransferResponse.model_validate(transfer)

    async def complete_transfer(
        self,
        user_id: UUID,
        firm_id: UUID,
        transfer_id: UUID,
        request: Request | None = None,
    ) -> TransferResponse:
        """Finalize an APPROVED transfer once its effective date is reached.

        In one transaction: the employee's ACTIVE contracts in the source
        firm are terminated, the employee moves to the destination firm (and
        client), and the transfer becomes COMPLETED.

        Args:
            user_id: Acting user, privileged in either firm
            firm_id: Source or destination firm UUID
            transfer_id: Transfer UUID
            request: HTTP request for audit logging

        Returns:
            The COMPLETED transfer

        Raises:
            TransferNotFoundError: If the firm is not a party to the transfer
            IllegalTransitionError: If the transfer is not APPROVED
            EffectiveDateNotReachedError: If the effective date is in the future
        """
        async with atomic(self.session):
            await self.access.require(user_id, firm_id, MANAGERS)
            transfer = await self._get_for_firm(transfer_id, firm_id, for_update=True)
            new_status = self._transition(transfer, TransferAction.COMPLETE)

            today = self.today()
            if transfer.effective_date > today:
                logger.info("Transfer completion refused: id=%s effective on %s", transfer.id, transfer.effective_date)
                raise EffectiveDateNotReachedError(transfer.effective_date)

            employee = await self.employee_repo.get_by_id(transfer.employee_id, for_update=True)
            if employee is None:
                raise EmployeeNotFoundError(transfer.employee_id)
            if employee.firm_id != transfer.from_firm_id:
                raise EmployeeNotInSourceFirmError(employee.id, transfer.from_firm_id)

            # (a) close the source-firm contracts
            active_contracts = await self.contract_repo.get_active_by_employee(
                transfer.employee_id, firm_id=transfer.from_firm_id
            )
            reason = termination_reason_for(transfer.id)
            for contract in active_contracts:
                await self.contract_repo.update(
                    contract,
                    status=ContractStatus.TERMINATED.value,
                    is_active=False,
                    termination_date=today,
                    termination_reason=reason,
                )

            # (b) re-home the employee
            await self.employee_repo.update(
                employee,
                firm_id=transfer.to_firm_id,
                assigned_client_id=transfer.client_id,
            )

            # (c) close the transfer
            completed_at = utc_now()
            await self.transfer_repo.update(transfer, status=new_status.value, completed_at=completed_at)

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.COMPLETE,
                entity=EntityType.EMPLOYEE_TRANSFER,
                entity_id=transfer.id,
                actor_id=user_id,
                metadata={
                    "employeeId": transfer.employee_id,
                    "fromFirmId": transfer.from_firm_id,
                    "toFirmId": transfer.to_firm_id,
                    "terminatedContractIds": [c.id for c in active_contracts],
                    "completedAt": completed_at,
                },
                request=request,
            )

        logger.info(
            "Transfer completed: id=%s employee=%s terminated_contracts=%d",
            transfer.id,
            transfer.employee_id,
            len(active_contracts),
        )
        return TransferResponse.model_validate(transfer)

    async def cancel_transfer(
        self,
        user_id: UUID,
        firm_id: UUID,
        transfer_id: UUID,
        request: Request | None = None,
    ) -> TransferResponse:
        """Cancel a PENDING or REJECTED transfer from its source firm. Irreversible.

        Raises:
            TransferNotFoundError: If the firm is not the transfer's source
            IllegalTransitionError: If the transfer cannot be cancelled
        """
        async with atomic(self.session):
            await self.access.require(user_id, firm_id, ADMINS)
            transfer = await self._get_for_firm(transfer_id, firm_id, TransferDirection.OUT, for_update=True)
            previous_status = transfer.status
            new_status = self._transition(transfer, TransferAction.CANCEL)

            await self.transfer_repo.update(transfer, status=new_status.value)

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.CANCEL,
                entity=EntityType.EMPLOYEE_TRANSFER,
                entity_id=transfer.id,
                actor_id=user_id,
                metadata={
                    "employeeId": transfer.employee_id,
                    "previousStatus": previous_status,
                    "transfer": transfer_snapshot(transfer),
                },
                request=request,
            )

        logger.info("Transfer cancelled: id=%s previous_status=%s", transfer.id, previous_status)
        return TransferResponse.model_validate(transfer)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_for_firm(
        self,
        transfer_id: UUID,
        firm_id: UUID,
        direction: TransferDirection | None = None,
        for_update: bool = False,
    ) -> EmployeeTransferORM:
        transfer = await self.transfer_repo.get_for_firm(
            transfer_id, firm_id, direction=direction, for_update=for_update
        )
        if transfer is None:
            raise TransferNotFoundError(transfer_id)
        return transfer

    @staticmethod
    def _transition(transfer: EmployeeTransferORM, action: TransferAction) -> TransferStatus:
        """Get the status ``action`` leads to, or refuse the action."""
        new_status = next_status(transfer.status, action)
        if new_status is None:
            logger.info("Transfer %s refused: id=%s status=%s", action.value, transfer.id, transfer.status)
            raise IllegalTransitionError("transfer", transfer.status, action.value)
        return new_status

    async def _check_client(self, client_id: UUID | None, to_firm_id: UUID) -> None:
        """The destination client must belong to the destination firm."""
        if client_id is not None and await self.client_repo.get_in_firm(client_id, to_firm_id) is None:
            raise ClientNotFoundError(client_id)

    async def _insert(self, **fields) -> EmployeeTransferORM:
        """Insert a transfer, translating a lost race on the PENDING slot."""
        try:
            return await self.transfer_repo.create(**fields)
        except IntegrityError as e:
            if is_unique_violation(e):
                raise ConcurrentModificationError(
                    "Another pending transfer was created concurrently"
                ) from e
            raise DataIntegrityError("Failed to save transfer") from e
