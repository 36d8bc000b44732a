"""Contract lifecycle service: create, update, renew, terminate, delete."""

import logging
from collections.abc import Callable
from datetime import date
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from staffing_api.config import Settings, get_settings
from staffing_api.database import atomic
from staffing_api.exceptions import (
    ActiveContractExistsError,
    ClientNotFoundError,
    ConcurrentModificationError,
    ContractNotFoundError,
    DataIntegrityError,
    EmployeeNotFoundError,
    FirmNotFoundError,
    IllegalTransitionError,
    InvalidDateRangeError,
    MissingContractDatesError,
    MissingReasonError,
    RenewalNotAllowedError,
)
from staffing_api.models.domain.contract import ContractStatus, ContractType, is_expired, requires_end_date
from staffing_api.models.domain.membership import ADMINS, ANY_MEMBER, MANAGERS
from staffing_api.models.dto.common import Pagination
from staffing_api.models.dto.contract import (
    ContractCreate,
    ContractDetailResponse,
    ContractListResponse,
    ContractRenew,
    ContractResponse,
    ContractSummary,
    ContractUpdate,
    RenewalEligibilityResponse,
)
from staffing_api.models.orm.contract import ContractORM
from staffing_api.repositories.contract_repository import (
    DEFAULT_SORT_COLUMN,
    SORT_COLUMNS,
    ContractRepository,
)
from staffing_api.repositories.employee_repository import EmployeeRepository
from staffing_api.repositories.firm_repository import ClientRepository, FirmRepository
from staffing_api.services.access_service import AccessService
from staffing_api.services.audit_service import (
    AuditAction,
    AuditService,
    EntityType,
    contract_snapshot,
    to_json_value,
)
from staffing_api.services.renewal_eligibility import RenewalPolicy, evaluate
from staffing_api.utils.dates import days_until, utc_today
from staffing_api.utils.db_errors import is_unique_violation
from staffing_api.utils.validation import (
    clean_text,
    sanitize_status,
    validate_sort_by,
    validate_sort_order,
)

logger = logging.getLogger(__name__)

# Fields a contract update may touch; status is never among them
UPDATABLE_FIELDS = (
    "type",
    "start_date",
    "end_date",
    "client_id",
    "client_firm_id",
    "position",
    "salary",
    "working_hours",
    "trial_period_end",
    "notes",
    "alert_threshold",
)

# Terms a renewal inherits from its predecessor when not supplied
INHERITED_TERMS = ("position", "salary", "working_hours", "notes", "alert_threshold")


def validate_contract_dates(contract_type: ContractType | str, start_date: date, end_date: date | None) -> None:
    """Check the date rules every stored contract must satisfy.

    Args:
        contract_type: Contract type code
        start_date: Contract start date
        end_date: Contract end date, None for open-ended contracts

    Raises:
        MissingContractDatesError: If a capped type has no end date
        InvalidDateRangeError: If the end date is before the start date
    """
    if end_date is None:
        if requires_end_date(contract_type):
            raise MissingContractDatesError(str(contract_type))
        return
    if end_date < start_date:
        raise InvalidDateRangeError(start_date, end_date)


class ContractService:
    """Service for the contract lifecycle.

    Every mutation runs inside ``atomic``: the access check, the reads it
    depends on, the writes and its audit entry commit together or not at all.
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
        self.policy = RenewalPolicy.from_settings(self.settings)
        self.today = today
        self.contract_repo = ContractRepository(session)
        self.employee_repo = EmployeeRepository(session)
        self.client_repo = ClientRepository(session)
        self.firm_repo = FirmRepository(session)
        self.access = AccessService(session)
        self.audit_service = AuditService(session)

    # =========================================================================
    # Response building
    # =========================================================================

    def build_response(self, contract: ContractORM) -> ContractResponse:
        """Build response from ORM model, adding the derived expiry fields."""
        today = self.today()
        return ContractResponse.model_validate(contract).model_copy(
            update={
                "is_expired": is_expired(contract.status, contract.end_date, today),
                "days_until_expiry": days_until(contract.end_date, today),
            }
        )

    async def _build_detail(self, contract: ContractORM) -> ContractDetailResponse:
        base = self.build_response(contract)
        renewed_from = None
        if contract.renewed_from_id is not None:
            predecessor = await self.contract_repo.get_by_id(contract.renewed_from_id)
            if predecessor is not None:
                renewed_from = ContractSummary.model_validate(predecessor)
        renewals = await self.contract_repo.get_renewals(contract.id)
        return ContractDetailResponse(
            **base.model_dump(),
            renewed_from=renewed_from,
            renewals=[ContractSummary.model_validate(r) for r in renewals],
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_contracts(
        self,
        user_id: UUID,
        firm_id: UUID,
        status: str | None = None,
        contract_type: str | None = None,
        employee_id: UUID | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> ContractListResponse:
        """List contracts of a firm.

        Args:
            user_id: Acting user
            firm_id: Firm UUID
            status: Status filter; unknown values are ignored
            contract_type: Type filter; unknown values are ignored
            employee_id: Employee filter
            sort_by: Public column name; unknown values fall back to startDate
            sort_order: asc or desc
            page: Page number, starting at 1
            limit: Page size, capped at max_page_size

        Returns:
            ContractListResponse with pagination metadata
        """
        await self.access.require(user_id, firm_id, ANY_MEMBER)

        page = max(page, 1)
        limit = min(max(limit or self.settings.default_page_size, 1), self.settings.max_page_size)

        contracts, total = await self.contract_repo.list_paged(
            firm_id=firm_id,
            status=sanitize_status(status, {s.value for s in ContractStatus}),
            contract_type=sanitize_status(contract_type, {t.value for t in ContractType}),
            employee_id=employee_id,
            sort_by=validate_sort_by(sort_by, set(SORT_COLUMNS), DEFAULT_SORT_COLUMN),
            sort_order=validate_sort_order(sort_order),
            offset=(page - 1) * limit,
            limit=limit,
        )

        return ContractListResponse(
            contracts=[self.build_response(c) for c in contracts],
            pagination=Pagination.build(total=total, page=page, limit=limit),
        )

    async def get_contract(self, user_id: UUID, firm_id: UUID, contract_id: UUID) -> ContractDetailResponse:
        """Get a contract with its renewal neighbours.

        Raises:
            ContractNotFoundError: If the contract is not in the firm
        """
        await self.access.require(user_id, firm_id, ANY_MEMBER)
        contract = await self._get_in_firm(contract_id, firm_id)
        return await self._build_detail(contract)

    async def list_expiring(self, user_id: UUID, firm_id: UUID) -> list[ContractResponse]:
        """List ACTIVE contracts within their alert window or already past their end."""
        await self.access.require(user_id, firm_id, ANY_MEMBER)
        contracts = await self.contract_repo.get_expiring(firm_id, self.today())
        return [self.build_response(c) for c in contracts]

    async def list_employee_contracts(
        self,
        user_id: UUID,
        firm_id: UUID,
        employee_id: UUID,
    ) -> list[ContractResponse]:
        """Contract history of an employee in a firm, newest first.

        Employees who left the firm keep their history visible to it.

        Raises:
            EmployeeNotFoundError: If the employee has no link to the firm
        """
        await self.access.require(user_id, firm_id, ANY_MEMBER)

        contracts = await self.contract_repo.get_by_employee(employee_id, firm_id=firm_id)
        if not contracts:
            employee = await self.employee_repo.get_in_firm(employee_id, firm_id)
            if employee is None:
                raise EmployeeNotFoundError(employee_id)
        return [self.build_response(c) for c in contracts]

    async def get_renewal_eligibility(
        self,
        user_id: UUID,
        firm_id: UUID,
        contract_id: UUID,
        start_date: date,
        end_date: date,
    ) -> RenewalEligibilityResponse:
        """Preview the renewal eligibility check without changing anything.

        Raises:
            ContractNotFoundError: If the contract is not in the firm
            InvalidDateRangeError: If the proposed end is before the start
        """
        await self.access.require(user_id, firm_id, ANY_MEMBER)
        if end_date < start_date:
            raise InvalidDateRangeError(start_date, end_date)

        contract = await self._get_in_firm(contract_id, firm_id)
        history = await self.contract_repo.get_cumulative_history(contract.employee_id, contract.id)
        result = evaluate(contract, start_date, end_date, history, self.today(), self.policy)
        return RenewalEligibilityResponse(contract_id=contract.id, **result.model_dump())

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_contract(
        self,
        user_id: UUID,
        firm_id: UUID,
        data: ContractCreate,
        request: Request | None = None,
    ) -> ContractResponse:
        """Create an ACTIVE contract for an employee of the firm.

        Args:
            user_id: Acting user
            firm_id: Firm UUID
            data: Contract data
            request: HTTP request for audit logging

        Returns:
            Created ContractResponse

        Raises:
            EmployeeNotFoundError: If the employee is not in the firm
            ActiveContractExistsError: If the employee already has an ACTIVE contract
        """
        async with atomic(self.session):
            await self.access.require(user_id, firm_id, MANAGERS)

            contract = await self.open_contract(
                firm_id=firm_id,
                employee_id=data.employee_id,
                values=data.model_dump(exclude={"employee_id"}),
            )

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.CREATE,
                entity=EntityType.CONTRACT,
                entity_id=contract.id,
                actor_id=user_id,
                metadata={
                    "employeeId": contract.employee_id,
                    "type": contract.type,
                    "startDate": contract.start_date,
                    "endDate": contract.end_date,
                },
                request=request,
            )

        logger.info("Contract created: id=%s firm=%s employee=%s", contract.id, firm_id, contract.employee_id)
        return self.build_response(contract)

    async def open_contract(
        self,
        firm_id: UUID,
        employee_id: UUID,
        values: dict[str, Any],
        employee_firm_id: UUID | None = None,
    ) -> ContractORM:
        """Insert an ACTIVE contract inside the caller's transaction.

        Shared by contract creation and transfer approval; writes no audit
        entry of its own.

        Args:
            firm_id: Firm that owns the contract
            employee_id: Employee UUID
            values: Contract fields (type, dates, terms)
            employee_firm_id: Firm the employee must currently belong to;
                defaults to ``firm_id``. Differs while a transfer is approved
                but not yet completed.

        Returns:
            Flushed ContractORM

        Raises:
            EmployeeNotFoundError: If the employee is not in the firm
            ActiveContractExistsError: If the employee already has an ACTIVE contract
        """
        employee = await self.employee_repo.get_in_firm(
            employee_id, employee_firm_id or firm_id, for_update=True
        )
        if employee is None:
            raise EmployeeNotFoundError(employee_id)

        contract_type = ContractType(values["type"])
        validate_contract_dates(contract_type, values["start_date"], values.get("end_date"))
        await self._check_references(firm_id, values.get("client_id"), values.get("client_firm_id"))
        await self._ensure_no_active_contract(employee_id)

        alert_threshold = values.get("alert_threshold")
        fields = {
            **{key: value for key, value in values.items() if key in UPDATABLE_FIELDS},
            "type": contract_type.value,
            "alert_threshold": (
                alert_threshold if alert_threshold is not None else self.settings.default_alert_threshold_days
            ),
        }
        return await self._insert(
            firm_id=firm_id,
            employee_id=employee_id,
            status=ContractStatus.ACTIVE.value,
            is_active=True,
            **fields,
        )

    async def update_contract(
        self,
        user_id: UUID,
        firm_id: UUID,
        contract_id: UUID,
        data: ContractUpdate,
        request: Request | None = None,
    ) -> ContractResponse:
        """Apply a partial update to a contract's terms.

        Only fields present in ``data`` change; status never does.

        Raises:
            ContractNotFoundError: If the contract is not in the firm
        """
        async with atomic(self.session):
            await self.access.require(user_id, firm_id, MANAGERS)
            contract = await self._get_in_firm(contract_id, firm_id, for_update=True)

            patch = {k: v for k, v in data.model_dump(exclude_unset=True).items() if k in UPDATABLE_FIELDS}
            if patch.get("type") is None:
                patch.pop("type", None)
            if patch.get("start_date") is None:
                patch.pop("start_date", None)
            if "alert_threshold" in patch and patch["alert_threshold"] is None:
                patch["alert_threshold"] = self.settings.default_alert_threshold_days

            new_type = patch.get("type", contract.type)
            validate_contract_dates(
                new_type,
                patch.get("start_date", contract.start_date),
                patch.get("end_date", contract.end_date),
            )
            await self._check_references(firm_id, patch.get("client_id"), patch.get("client_firm_id"))

            before = {key: getattr(contract, key) for key in patch}
            if "type" in patch:
                patch["type"] = ContractType(patch["type"]).value
            await self.contract_repo.update(contract, **patch)

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.UPDATE,
                entity=EntityType.CONTRACT,
                entity_id=contract.id,
                actor_id=user_id,
                metadata={"before": to_json_value(before), "after": to_json_value(patch)},
                request=request,
            )

        logger.info("Contract updated: id=%s firm=%s fields=%s", contract.id, firm_id, sorted(patch))
        return self.build_response(contract)

    async def renew_contract(
        self,
        user_id: UUID,
        firm_id: UUID,
        contract_id: UUID,
        data: ContractRenew,
        request: Request | None = None,
    ) -> ContractResponse:
        """Replace a contract with an ACTIVE successor.

        The predecessor becomes RENEWED and the successor references it. Both
        writes and the audit entry share one transaction.

        Args:
            user_id: Acting user
            firm_id: Firm UUID
            contract_id: Contract to renew
            data: Successor dates and term overrides
            request: HTTP request for audit logging

        Returns:
            The successor contract

        Raises:
            ContractNotFoundError: If the contract is not in the firm
            RenewalNotAllowedError: If the eligibility check fails
        """
        async with atomic(self.session):
            await self.access.require(user_id, firm_id, MANAGERS)
            if data.end_date < data.start_date:
                raise InvalidDateRangeError(data.start_date, data.end_date)

            contract = await self._get_in_firm(contract_id, firm_id, for_update=True)
            history = await self.contract_repo.get_cumulative_history(contract.employee_id, contract.id)
            result = evaluate(contract, data.start_date, data.end_date, history, self.today(), self.policy)
            if not result.is_eligible:
                logger.info("Renewal refused: contract=%s firm=%s", contract.id, firm_id)
                raise RenewalNotAllowedError(result.reason or "Renewal not allowed", result.error_details())

            supplied = data.model_fields_set
            client_id = data.client_id if "client_id" in supplied else contract.client_id
            client_firm_id = data.client_firm_id if "client_firm_id" in supplied else contract.client_firm_id
            await self._check_references(firm_id, data.client_id, data.client_firm_id)
            terms = {
                field: getattr(data, field) if getattr(data, field) is not None else getattr(contract, field)
                for field in INHERITED_TERMS
            }

            # The predecessor must leave ACTIVE before the successor is inserted
            await self.contract_repo.update(contract, status=ContractStatus.RENEWED.value, is_active=False)

            successor = await self._insert(
                firm_id=firm_id,
                employee_id=contract.employee_id,
                client_id=client_id,
                client_firm_id=client_firm_id,
                type=contract.type,
                status=ContractStatus.ACTIVE.value,
                is_active=True,
                start_date=data.start_date,
                end_date=data.end_date,
                renewed_from_id=contract.id,
                **terms,
            )

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.RENEW,
                entity=EntityType.CONTRACT,
                entity_id=successor.id,
                actor_id=user_id,
                metadata={
                    "employeeId": contract.employee_id,
                    "previousContractId": contract.id,
                    "newContractId": successor.id,
                    "newStartDate": successor.start_date,
                    "newEndDate": successor.end_date,
                },
                request=request,
            )

        logger.info("Contract renewed: id=%s successor=%s firm=%s", contract.id, successor.id, firm_id)
        return self.build_response(successor)

    async def terminate_contract(
        self,
        user_id: UUID,
        firm_id: UUID,
        contract_id: UUID,
        reason: str | None,
        request: Request | None = None,
    ) -> ContractResponse:
        """Terminate an ACTIVE contract. Irreversible.

        Raises:
            MissingReasonError: If the reason is empty
            ContractNotFoundError: If the contract is not in the firm
            IllegalTransitionError: If the contract is not ACTIVE
        """
        async with atomic(self.session):
            await self.access.require(user_id, firm_id, ADMINS)
            cleaned_reason = clean_text(reason)
            if not cleaned_reason:
                raise MissingReasonError("termination reason")

            contract = await self._get_in_firm(contract_id, firm_id, for_update=True)
            if contract.status != ContractStatus.ACTIVE:
                raise IllegalTransitionError("contract", contract.status, "terminate")

            await self.contract_repo.update(
                contract,
                status=ContractStatus.TERMINATED.value,
                is_active=False,
                termination_date=self.today(),
                termination_reason=cleaned_reason,
            )

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.TERMINATE,
                entity=EntityType.CONTRACT,
                entity_id=contract.id,
                actor_id=user_id,
                metadata={
                    "employeeId": contract.employee_id,
                    "terminationDate": contract.termination_date,
                    "reason": cleaned_reason,
                },
                request=request,
            )

        logger.info("Contract terminated: id=%s firm=%s", contract.id, firm_id)
        return self.build_response(contract)

    async def delete_contract(
        self,
        user_id: UUID,
        firm_id: UUID,
        contract_id: UUID,
        request: Request | None = None,
    ) -> None:
        """Hard-delete a contract, keeping its full prior state in the audit log.

        Raises:
            ContractNotFoundError: If the contract is not in the firm
        """
        async with atomic(self.session):
            await self.access.require(user_id, firm_id, ADMINS)
            contract = await self._get_in_firm(contract_id, firm_id, for_update=True)
            snapshot = contract_snapshot(contract)

            await self.contract_repo.delete(contract)

            await self.audit_service.log(
                firm_id=firm_id,
                action=AuditAction.DELETE,
                entity=EntityType.CONTRACT,
                entity_id=contract_id,
                actor_id=user_id,
                metadata={"contract": snapshot},
                request=request,
            )

        logger.info("Contract deleted: id=%s firm=%s", contract_id, firm_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_in_firm(self, contract_id: UUID, firm_id: UUID, for_update: bool = False) -> ContractORM:
        contract = await self.contract_repo.get_in_firm(contract_id, firm_id, for_update=for_update)
        if contract is None:
            raise ContractNotFoundError(contract_id)
        return contract

    async def _ensure_no_active_contract(self, employee_id: UUID) -> None:
        """Enforce the at-most-one-ACTIVE-contract rule before an insert."""
        active = await self.contract_repo.get_active_by_employee(employee_id)
        if len(active) > 1:
            raise DataIntegrityError(
                "Employee has more than one active contract",
                {"employee_id": str(employee_id), "contract_ids": [str(c.id) for c in active]},
            )
        if active:
            logger.info("Contract refused: employee=%s already has an active contract", employee_id)
            raise ActiveContractExistsError(employee_id, active[0].id)

    async def _check_references(
        self,
        firm_id: UUID,
        client_id: UUID | None,
        client_firm_id: UUID | None,
    ) -> None:
        if client_id is not None and await self.client_repo.get_in_firm(client_id, firm_id) is None:
            raise ClientNotFoundError(client_id)
        if client_firm_id is not None and await self.firm_repo.get_by_id(client_firm_id) is None:
            raise FirmNotFoundError(client_firm_id)

    async def _insert(self, **fields: Any) -> ContractORM:
        """Insert a contract, translating a lost race on the ACTIVE slot."""
        try:
            return await self.contract_repo.create(**fields)
        except IntegrityError as e:
            if is_unique_violation(e):
                raise ConcurrentModificationError(
                    "Another active contract was created concurrently"
                ) from e
            raise DataIntegrityError("Failed to save contract") from e
