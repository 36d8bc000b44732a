"""Employee transfer repository."""

from uuid import UUID

from sqlalchemy import and_, func, or_, select

from staffing_api.models.domain.transfer import TransferDirection, TransferStatus
from staffing_api.models.orm.employee_transfer import EmployeeTransferORM
from staffing_api.repositories.base import BaseRepository


class TransferRepository(BaseRepository[EmployeeTransferORM]):
    """Repository for employee transfer operations."""

    model = EmployeeTransferORM

    async def get_for_firm(
        self,
        transfer_id: UUID,
        firm_id: UUID,
        direction: TransferDirection | None = None,
        for_update: bool = False,
    ) -> EmployeeTransferORM | None:
        """Get a transfer visible to a firm.

        Args:
            transfer_id: Transfer UUID
            firm_id: Firm UUID
            direction: ``out`` requires the firm to be the source, ``in`` the
                destination; None accepts either side
            for_update: Lock the transfer row for the rest of the transaction

        Returns:
            EmployeeTransferORM or None if the firm is not a party to it
        """
        query = select(EmployeeTransferORM).where(
            and_(EmployeeTransferORM.id == transfer_id, self._side(firm_id, direction))
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_pending_for_employee(self, employee_id: UUID) -> EmployeeTransferORM | None:
        """Get the PENDING transfer of an employee, if any."""
        result = await self.session.execute(
            select(EmployeeTransferORM)
            .where(
                and_(
                    EmployeeTransferORM.employee_id == employee_id,
                    EmployeeTransferORM.status == TransferStatus.PENDING.value,
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_paged(
        self,
        firm_id: UUID,
        status: str | None = None,
        direction: TransferDirection | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[EmployeeTransferORM], int]:
        """List transfers involving a firm, newest first.

        Args:
            firm_id: Firm UUID
            status: Filter by status
            direction: ``in``, ``out`` or None for both
            offset: Pagination offset
            limit: Page size

        Returns:
            Tuple of (transfers, total_count)
        """
        conditions = [self._side(firm_id, direction)]
        if status:
            conditions.append(EmployeeTransferORM.status == status)

        count_result = await self.session.execute(
            select(func.count()).select_from(EmployeeTransferORM).where(and_(*conditions))
        )
        total = count_result.scalar_one()

        result = await self.session.execute(
            select(EmployeeTransferORM)
            .where(and_(*conditions))
            .order_by(EmployeeTransferORM.created_at.desc(), EmployeeTransferORM.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    def _side(firm_id: UUID, direction: TransferDirection | None):
        if direction == TransferDirection.OUT:
            return EmployeeTransferORM.from_firm_id == firm_id
        if direction == TransferDirection.IN:
            return EmployeeTransferORM.to_firm_id == firm_id
        return or_(
            EmployeeTransferORM.from_firm_id == firm_id,
            EmployeeTransferORM.to_firm_id == firm_id,
        )
