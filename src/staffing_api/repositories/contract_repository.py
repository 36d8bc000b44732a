"""Contract repository (the contract store)."""

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import and_, func, or_, select

from staffing_api.models.domain.contract import (
    CAPPED_TYPES,
    CUMULATIVE_STATUSES,
    ContractStatus,
)
from staffing_api.models.orm.contract import ContractORM
from staffing_api.repositories.base import BaseRepository

# Whitelist of sortable columns, keyed by their public (camelCase) name
SORT_COLUMNS = {
    "startDate": ContractORM.start_date,
    "endDate": ContractORM.end_date,
    "type": ContractORM.type,
    "status": ContractORM.status,
    "position": ContractORM.position,
    "salary": ContractORM.salary,
    "createdAt": ContractORM.created_at,
    "updatedAt": ContractORM.updated_at,
}
DEFAULT_SORT_COLUMN = "startDate"

# Upper bound of alert_threshold, used to pre-filter expiring contracts
MAX_ALERT_THRESHOLD_DAYS = 365


class ContractRepository(BaseRepository[ContractORM]):
    """Repository for contract operations."""

    model = ContractORM

    async def get_in_firm(
        self,
        contract_id: UUID,
        firm_id: UUID,
        for_update: bool = False,
    ) -> ContractORM | None:
        """Get a contract only if it belongs to the firm.

        Args:
            contract_id: Contract UUID
            firm_id: Firm UUID
            for_update: Lock the contract row for the rest of the transaction

        Returns:
            ContractORM or None if not found in the firm
        """
        query = select(ContractORM).where(
            and_(ContractORM.id == contract_id, ContractORM.firm_id == firm_id)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_employee(
        self,
        employee_id: UUID,
        firm_id: UUID | None = None,
    ) -> list[ContractORM]:
        """Get contracts of an employee, newest start date first.

        Args:
            employee_id: Employee UUID
            firm_id: Optional firm restriction

        Returns:
            List of contracts
        """
        query = select(ContractORM).where(ContractORM.employee_id == employee_id)
        if firm_id is not None:
            query = query.where(ContractORM.firm_id == firm_id)
        query = query.order_by(ContractORM.start_date.desc(), ContractORM.id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_active_by_employee(
        self,
        employee_id: UUID,
        firm_id: UUID | None = None,
    ) -> list[ContractORM]:
        """Get the ACTIVE contracts of an employee.

        A healthy database returns at most one row; callers treat more as
        corrupted data.

        Args:
            employee_id: Employee UUID
            firm_id: Optional firm restriction

        Returns:
            List of ACTIVE contracts
        """
        query = select(ContractORM).where(
            and_(
                ContractORM.employee_id == employee_id,
                ContractORM.status == ContractStatus.ACTIVE.value,
            )
        )
        if firm_id is not None:
            query = query.where(ContractORM.firm_id == firm_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_cumulative_history(
        self,
        employee_id: UUID,
        include_id: UUID,
    ) -> list[ContractORM]:
        """Get the contracts counted toward the cumulative duration cap.

        Capped-type contracts of the employee that are ACTIVE or RENEWED,
        plus the contract identified by ``include_id`` whatever its status.

        Args:
            employee_id: Employee UUID
            include_id: Contract always included (the one being renewed)

        Returns:
            Contracts ordered by start date
        """
        result = await self.session.execute(
            select(ContractORM)
            .where(
                and_(
                    ContractORM.employee_id == employee_id,
                    ContractORM.type.in_([t.value for t in CAPPED_TYPES]),
                    or_(
                        ContractORM.status.in_([s.value for s in CUMULATIVE_STATUSES]),
                        ContractORM.id == include_id,
                    ),
                )
            )
            .order_by(ContractORM.start_date.asc())
        )
        return list(result.scalars().all())

    async def get_renewals(self, contract_id: UUID) -> list[ContractORM]:
        """Get the contracts that renewed the given contract."""
        result = await self.session.execute(
            select(ContractORM)
            .where(ContractORM.renewed_from_id == contract_id)
            .order_by(ContractORM.start_date.asc())
        )
        return list(result.scalars().all())

    async def list_paged(
        self,
        firm_id: UUID,
        status: str | None = None,
        contract_type: str | None = None,
        employee_id: UUID | None = None,
        sort_by: str = DEFAULT_SORT_COLUMN,
        sort_order: str = "desc",
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[ContractORM], int]:
        """List contracts of a firm with filters, sorting and pagination.

        Args:
            firm_id: Firm UUID
            status: Filter by status
            contract_type: Filter by type
            employee_id: Filter by employee
            sort_by: Public column name (see SORT_COLUMNS)
            sort_order: asc or desc
            offset: Pagination offset
            limit: Page size

        Returns:
            Tuple of (contracts, total_count)
        """
        conditions = [ContractORM.firm_id == firm_id]
        if status:
            conditions.append(ContractORM.status == status)
        if contract_type:
            conditions.append(ContractORM.type == contract_type)
        if employee_id:
            conditions.append(ContractORM.employee_id == employee_id)

        count_result = await self.session.execute(
            select(func.count()).select_from(ContractORM).where(and_(*conditions))
        )
        total = count_result.scalar_one()

        sort_column = SORT_COLUMNS.get(sort_by, SORT_COLUMNS[DEFAULT_SORT_COLUMN])
        ordered = sort_column.asc() if sort_order == "asc" else sort_column.desc()

        # id as tie-breaker keeps pages stable across requests
        result = await self.session.execute(
            select(ContractORM)
            .where(and_(*conditions))
            .order_by(ordered, ContractORM.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_expiring(self, firm_id: UUID, today: date) -> list[ContractORM]:
        """Get ACTIVE contracts that reached their alert window.

        A contract is in its window when ``end_date - alert_threshold <= today``;
        contracts whose end date already passed are included.

        Args:
            firm_id: Firm UUID
            today: Reference date

        Returns:
            Contracts ordered by end date
        """
        horizon = today + timedelta(days=MAX_ALERT_THRESHOLD_DAYS)
        result = await self.session.execute(
            select(ContractORM)
            .where(
                and_(
                    ContractORM.firm_id == firm_id,
                    ContractORM.status == ContractStatus.ACTIVE.value,
                    ContractORM.end_date.isnot(None),
                    ContractORM.end_date <= horizon,
                )
            )
            .order_by(ContractORM.end_date.asc(), ContractORM.id.asc())
        )
        return [
            contract
            for contract in result.scalars().all()
            if contract.end_date - timedelta(days=contract.alert_threshold) <= today
        ]
