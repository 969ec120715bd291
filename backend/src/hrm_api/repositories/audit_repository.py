"""Audit log repository."""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select

from hrm_api.models.orm.audit_log import AuditLogORM
from hrm_api.repositories.base import BaseRepository


class AuditRepository(BaseRepository[AuditLogORM]):
    """Repository for audit log operations."""

    model = AuditLogORM
    resource_type = "audit_log"

    async def log(
        self,
        action: str,
        resource_type: str,
        resource_id: UUID | None = None,
        actor_id: UUID | None = None,
        changes: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLogORM:
        """Create an audit log entry.

        Args:
            action: Action performed
            resource_type: Type of resource affected
            resource_id: ID of affected resource
            actor_id: Principal who performed the action
            changes: Dict of changes made
            ip_address: Client IP address
            user_agent: Client user agent

        Returns:
            Created AuditLogORM
        """
        log_entry = AuditLogORM(
            id=uuid4(),
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            actor_id=actor_id,
            changes=changes,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(log_entry)
        await self.flush(log_entry.id)
        return log_entry
