"""Audit service: the append-only record of every mutation."""

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from staffing_api.exceptions import AuditWriteError
from staffing_api.models.orm.contract import ContractORM
from staffing_api.models.orm.employee_transfer import EmployeeTransferORM
from staffing_api.repositories.audit_repository import AuditRepository
from staffing_api.security.rate_limit import get_real_client_ip
from staffing_api.utils.secure_logging import log_error

logger = logging.getLogger(__name__)


class AuditAction:
    """Standard audit action types."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    RENEW = "RENEW"
    TERMINATE = "TERMINATE"

    # Transfer workflow
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    COMPLETE = "COMPLETE"
    CANCEL = "CANCEL"


class EntityType:
    """Standard entity types for audit logging."""

    CONTRACT = "CONTRACT"
    EMPLOYEE_TRANSFER = "EMPLOYEE_TRANSFER"


_CONTRACT_FIELDS = (
    "id",
    "firm_id",
    "employee_id",
    "client_id",
    "client_firm_id",
    "type",
    "status",
    "start_date",
    "end_date",
    "renewed_from_id",
    "is_active",
    "position",
    "salary",
    "working_hours",
    "trial_period_end",
    "notes",
    "alert_threshold",
    "termination_date",
    "termination_reason",
)

_TRANSFER_FIELDS = (
    "id",
    "employee_id",
    "from_firm_id",
    "to_firm_id",
    "client_id",
    "transfer_date",
    "effective_date",
    "reason",
    "notes",
    "status",
)


def to_json_value(value: Any) -> Any:
    """Convert a value to something the JSON metadata column can store.

    Decimals become strings so that amounts keep their exact value.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_value(v) for v in value]
    return str(value)


def contract_snapshot(contract: ContractORM) -> dict[str, Any]:
    """Full state of a contract, as stored in audit metadata."""
    return {field: to_json_value(getattr(contract, field)) for field in _CONTRACT_FIELDS}


def transfer_snapshot(transfer: EmployeeTransferORM) -> dict[str, Any]:
    """State of a transfer, as stored in audit metadata."""
    return {field: to_json_value(getattr(transfer, field)) for field in _TRANSFER_FIELDS}


class AuditService:
    """Service for audit logging operations.

    Every mutating service call writes exactly one entry through this
    service inside its transaction. A failed write raises
    ``AuditWriteError`` so that the enclosing transaction is rolled back.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize audit service.

        Args:
            session: Database session
        """
        self.session = session
        self.audit_repo = AuditRepository(session)

    async def log(
        self,
        firm_id: UUID,
        action: str,
        entity: str,
        entity_id: UUID | None = None,
        actor_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
        request: Request | None = None,
    ) -> None:
        """Log an audit event.

        Args:
            firm_id: Firm in whose name the action was performed
            action: Action performed (use AuditAction constants)
            entity: Type of entity (use EntityType constants)
            entity_id: ID of the affected entity
            actor_id: ID of the user performing the action
            metadata: Action-specific payload (before/after values, related ids)
            request: FastAPI request object (for extracting IP/user agent)

        Raises:
            AuditWriteError: If the entry could not be written
        """
        ip_address = None
        user_agent = None
        if request is not None:
            ip_address = self._get_client_ip(request)
            user_agent = request.headers.get("user-agent", "")[:500]

        try:
            await self.audit_repo.log(
                firm_id=firm_id,
                action=action,
                entity=entity,
                entity_id=entity_id,
                actor_id=actor_id,
                metadata=to_json_value(metadata) if metadata is not None else None,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        except SQLAlchemyError as e:
            log_error(logger, "Failed to write audit log", e, action=action, entity=entity)
            raise AuditWriteError(action) from e

        logger.debug(
            "Audit logged: action=%s entity=%s/%s actor=%s",
            action,
            entity,
            entity_id,
            actor_id,
        )

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP from request, honouring trusted proxies."""
        return get_real_client_ip(request)
