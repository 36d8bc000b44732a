"""SQLAlchemy ORM models package."""

from staffing_api.models.orm.audit_log import AuditLogORM
from staffing_api.models.orm.base import Base
from staffing_api.models.orm.client import ClientORM
from staffing_api.models.orm.contract import ContractORM
from staffing_api.models.orm.employee import EmployeeORM
from staffing_api.models.orm.employee_transfer import EmployeeTransferORM
from staffing_api.models.orm.holding import FirmORM, HoldingORM
from staffing_api.models.orm.user import UserFirmORM, UserORM

__all__ = [
    "Base",
    "AuditLogORM",
    "ClientORM",
    "ContractORM",
    "EmployeeORM",
    "EmployeeTransferORM",
    "FirmORM",
    "HoldingORM",
    "UserFirmORM",
    "UserORM",
]
