"""Firm, membership and client repositories."""

from uuid import UUID

from sqlalchemy import and_, select

from staffing_api.models.orm.client import ClientORM
from staffing_api.models.orm.holding import FirmORM
from staffing_api.models.orm.user import UserFirmORM
from staffing_api.repositories.base import BaseRepository


class FirmRepository(BaseRepository[FirmORM]):
    """Repository for firm lookups."""

    model = FirmORM

    async def get_pair(self, first_id: UUID, second_id: UUID) -> tuple[FirmORM | None, FirmORM | None]:
        """Get two firms in a single query.

        Args:
            first_id: First firm UUID
            second_id: Second firm UUID

        Returns:
            Tuple of the firms in argument order, None where missing
        """
        result = await self.session.execute(
            select(FirmORM).where(FirmORM.id.in_([first_id, second_id]))
        )
        firms = {firm.id: firm for firm in result.scalars().all()}
        return firms.get(first_id), firms.get(second_id)


class MembershipRepository(BaseRepository[UserFirmORM]):
    """Repository for user-firm memberships (read-only for this service)."""

    model = UserFirmORM

    async def get_membership(self, user_id: UUID, firm_id: UUID) -> UserFirmORM | None:
        """Get the membership of a user in a firm.

        Args:
            user_id: User UUID
            firm_id: Firm UUID

        Returns:
            UserFirmORM or None if the user is not a member
        """
        result = await self.session.execute(
            select(UserFirmORM).where(
                and_(UserFirmORM.user_id == user_id, UserFirmORM.firm_id == firm_id)
            )
        )
        return result.scalar_one_or_none()


class ClientRepository(BaseRepository[ClientORM]):
    """Repository for client lookups."""

    model = ClientORM

    async def get_in_firm(self, client_id: UUID, firm_id: UUID) -> ClientORM | None:
        """Get a client only if it belongs to the firm."""
        result = await self.session.execute(
            select(ClientORM).where(and_(ClientORM.id == client_id, ClientORM.firm_id == firm_id))
        )
        return result.scalar_one_or_none()
