"""Append-only audit trail storage."""

from typing import Any
from uuid import UUID

from staffing_api.models.orm.audit_log import AuditLogORM
from staffing_api.repositories.base import BaseRepository


class AuditRepository(BaseRepository[AuditLogORM]):
    """Writes audit entries. Nothing here updates or deletes them."""

    model = AuditLogORM

    async def log(
        self,
        firm_id: UUID,
        action: str,
        entity: str,
        entity_id: UUID | None = None,
        actor_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLogORM:
        """Record that ``actor_id`` performed ``action`` on an entity of ``firm_id``.

        The entry is flushed in the caller's transaction, so a failure here
        aborts the business change it describes.

        Args:
            firm_id: Firm the action was performed in
            action: CREATE, UPDATE, DELETE, RENEW, TERMINATE, APPROVE, ...
            entity: CONTRACT or EMPLOYEE_TRANSFER
            entity_id: Affected row
            actor_id: Acting user
            metadata: Action payload (before/after values, reasons, links)
            ip_address: Client address
            user_agent: Client user agent

        Returns:
            The stored entry
        """
        return await self.create(
            firm_id=firm_id,
            actor_id=actor_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            extra_data=metadata,
            ip_address=ip_address,
            user_agent=user_agent,
        )
