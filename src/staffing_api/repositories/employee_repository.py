"""Employee repository."""

from uuid import UUID

from sqlalchemy import and_, select

from staffing_api.models.orm.employee import EmployeeORM
from staffing_api.repositories.base import BaseRepository


class EmployeeRepository(BaseRepository[EmployeeORM]):
    """Repository for employee operations."""

    model = EmployeeORM

    async def get_in_firm(
        self,
        employee_id: UUID,
        firm_id: UUID,
        for_update: bool = False,
    ) -> EmployeeORM | None:
        """Get an employee only if they currently belong to the firm.

        Args:
            employee_id: Employee UUID
            firm_id: Firm UUID
            for_update: Lock the employee row; serializes writers that check
                per-employee invariants

        Returns:
            EmployeeORM or None if not found in the firm
        """
        query = select(EmployeeORM).where(
            and_(EmployeeORM.id == employee_id, EmployeeORM.firm_id == firm_id)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
