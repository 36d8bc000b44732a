"""Tests for the tenant access guard."""

from uuid import uuid4

import pytest

from staffing_api.exceptions import AccessDeniedError, InsufficientRoleError
from staffing_api.models.domain.membership import (
    ADMINS,
    ANY_MEMBER,
    MANAGERS,
    FirmRole,
    Membership,
    roles_at_least,
)
from staffing_api.models.orm import UserFirmORM
from staffing_api.services.access_service import AccessService


class TestRoleOrder:
    def test_roles_are_ordered_by_privilege(self):
        assert FirmRole.OWNER.at_least(FirmRole.ADMIN)
        assert FirmRole.MANAGER.at_least(FirmRole.MANAGER)
        assert not FirmRole.STAFF.at_least(FirmRole.MANAGER)

    def test_named_role_sets_match_floors(self):
        assert MANAGERS == {FirmRole.OWNER, FirmRole.ADMIN, FirmRole.MANAGER}
        assert ADMINS == {FirmRole.OWNER, FirmRole.ADMIN}
        assert ANY_MEMBER == set(FirmRole)

    def test_floor_includes_more_privileged_roles(self):
        assert roles_at_least(FirmRole.STAFF) == {FirmRole.OWNER, FirmRole.ADMIN, FirmRole.MANAGER, FirmRole.STAFF}
        assert roles_at_least(FirmRole.OWNER) == {FirmRole.OWNER}


class TestAuthorize:
    async def test_member_gets_role(self, session, world):
        membership = await AccessService(session).authorize(world.manager.id, world.firm_b.id)

        assert membership.role == FirmRole.MANAGER
        assert membership.firm_id == world.firm_b.id

    async def test_non_member_is_denied(self, session, world):
        with pytest.raises(AccessDeniedError):
            await AccessService(session).authorize(world.staff.id, world.firm_b.id)

    async def test_unknown_role_grants_nothing(self, session, session_maker, world):
        async with session_maker() as setup:
            setup.add(UserFirmORM(user_id=world.outsider.id, firm_id=world.firm_a.id, role="SUPERUSER"))
            await setup.commit()

        with pytest.raises(AccessDeniedError):
            await AccessService(session).authorize(world.outsider.id, world.firm_a.id)


class TestRequireRole:
    @pytest.mark.parametrize("role", [FirmRole.OWNER, FirmRole.ADMIN, FirmRole.MANAGER])
    def test_managers_pass(self, role):
        membership = Membership(user_id=uuid4(), firm_id=uuid4(), role=role)

        assert AccessService.require_role(membership, MANAGERS) is membership

    @pytest.mark.parametrize("role", [FirmRole.STAFF, FirmRole.VIEWER])
    def test_lower_roles_fail(self, role):
        membership = Membership(user_id=uuid4(), firm_id=uuid4(), role=role)

        with pytest.raises(InsufficientRoleError) as exc_info:
            AccessService.require_role(membership, MANAGERS)

        assert exc_info.value.details == {"role": role.value, "allowed_roles": ["OWNER", "ADMIN", "MANAGER"]}

    async def test_require_combines_both_checks(self, session, world):
        with pytest.raises(InsufficientRoleError):
            await AccessService(session).require(world.manager.id, world.firm_a.id, ADMINS)
