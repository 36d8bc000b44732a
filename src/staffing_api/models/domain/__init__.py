"""Domain models package."""

from staffing_api.models.domain.contract import ContractStatus, ContractType
from staffing_api.models.domain.membership import FirmRole, Membership
from staffing_api.models.domain.transfer import TransferDirection, TransferStatus
from staffing_api.models.domain.user import CurrentUser

__all__ = [
    "ContractStatus",
    "ContractType",
    "CurrentUser",
    "FirmRole",
    "Membership",
    "TransferDirection",
    "TransferStatus",
]
