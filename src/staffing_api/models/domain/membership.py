"""Firm membership domain model."""

from collections.abc import Collection
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel


class FirmRole(StrEnum):
    """Role of a user inside a firm, ordered by descending privilege."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    VIEWER = "VIEWER"

    @property
    def rank(self) -> int:
        """Privilege rank; lower is more privileged."""
        return _ROLE_ORDER.index(self)

    def at_least(self, floor: "FirmRole") -> bool:
        """Check whether this role is as privileged as ``floor`` or more."""
        return self.rank <= floor.rank


_ROLE_ORDER = [
    FirmRole.OWNER,
    FirmRole.ADMIN,
    FirmRole.MANAGER,
    FirmRole.STAFF,
    FirmRole.VIEWER,
]


def roles_at_least(floor: FirmRole) -> frozenset[FirmRole]:
    """Get every role at or above the given privilege floor."""
    return frozenset(role for role in FirmRole if role.at_least(floor))


# Role floors used by the access guard
ANY_MEMBER = roles_at_least(FirmRole.VIEWER)
MANAGERS = roles_at_least(FirmRole.MANAGER)
ADMINS = roles_at_least(FirmRole.ADMIN)


class Membership(BaseModel):
    """A user's membership in a firm."""

    user_id: UUID
    firm_id: UUID
    role: FirmRole

    class Config:
        """Pydantic config."""

        from_attributes = True

    def has_role(self, allowed_roles: Collection[FirmRole]) -> bool:
        """Check if the membership role is one of the allowed roles."""
        return self.role in allowed_roles
