"""Tenant access guard: firm membership and role floors."""

import logging
from collections.abc import Collection
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from staffing_api.exceptions import AccessDeniedError, InsufficientRoleError
from staffing_api.models.domain.membership import FirmRole, Membership
from staffing_api.repositories.firm_repository import MembershipRepository

logger = logging.getLogger(__name__)


class AccessService:
    """Resolves what a user may do inside a firm.

    Every firm-scoped operation calls ``authorize`` first and then checks the
    operation's role floor with ``require_role``.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.membership_repo = MembershipRepository(session)

    async def authorize(self, user_id: UUID, firm_id: UUID) -> Membership:
        """Get the caller's membership in a firm.

        Args:
            user_id: Acting user UUID
            firm_id: Firm UUID

        Returns:
            Membership carrying the caller's role

        Raises:
            AccessDeniedError: If the user is not a member of the firm
        """
        user_firm = await self.membership_repo.get_membership(user_id, firm_id)
        if user_firm is None:
            logger.info("Access denied: user=%s firm=%s", user_id, firm_id)
            raise AccessDeniedError(firm_id)

        try:
            role = FirmRole(user_firm.role)
        except ValueError as e:
            # Unknown role strings grant nothing
            logger.warning("Unknown firm role %r for user=%s firm=%s", user_firm.role, user_id, firm_id)
            raise AccessDeniedError(firm_id) from e

        return Membership(user_id=user_id, firm_id=firm_id, role=role)

    @staticmethod
    def require_role(membership: Membership, allowed_roles: Collection[FirmRole]) -> Membership:
        """Check the membership role against an operation's allowed roles.

        Args:
            membership: Result of ``authorize``
            allowed_roles: Roles permitted to perform the operation

        Returns:
            The same membership

        Raises:
            InsufficientRoleError: If the role is not allowed
        """
        if not membership.has_role(allowed_roles):
            raise InsufficientRoleError(
                membership.role.value,
                sorted((role.value for role in allowed_roles), key=lambda r: FirmRole(r).rank),
            )
        return membership

    async def require(
        self,
        user_id: UUID,
        firm_id: UUID,
        allowed_roles: Collection[FirmRole],
    ) -> Membership:
        """Authorize the user in the firm and enforce the role floor in one step."""
        membership = await self.authorize(user_id, firm_id)
        return self.require_role(membership, allowed_roles)
