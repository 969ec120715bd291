"""Audit service for centralized audit logging."""

import logging
from datetime import date, datetime
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrm_api.repositories.audit_repository import AuditRepository
from hrm_api.security.rate_limit import get_real_client_ip

logger = logging.getLogger(__name__)


class AuditAction:
    """Standard audit action types."""

    # Employees
    EMPLOYEE_CREATE = "employee_create"
    EMPLOYEE_UPDATE = "employee_update"
    EMPLOYEE_TERMINATE = "employee_terminate"
    EMPLOYEE_REACTIVATE = "employee_reactivate"

    # Org structure
    ORG_UNIT_CREATE = "org_unit_create"
    ORG_UNIT_UPDATE = "org_unit_update"
    POSITION_CREATE = "position_create"
    POSITION_UPDATE = "position_update"

    # User access
    ROLE_ASSIGN = "role_assign"
    ROLE_REVOKE = "role_revoke"
    EMPLOYEE_LINK = "employee_link"
    EMPLOYEE_UNLINK = "employee_unlink"


class ResourceType:
    """Standard resource types for audit logging."""

    USER = "user"
    ROLE = "role"
    EMPLOYEE = "employee"
    ORG_UNIT = "org_unit"
    POSITION = "position"


class AuditService:
    """Service for audit logging operations.

    Entries are written in the caller's transaction, so an audit entry
    exists exactly when the mutation it describes was committed.
    """

    # Personal fields that are masked in audit logs
    SENSITIVE_FIELDS = frozenset({
        "phone",
        "access_token",
        "token",
        "secret",
    })

    def __init__(self, session: AsyncSession) -> None:
        """Initialize audit service.

        Args:
            session: Database session
        """
        self.session = session
        self.audit_repo = AuditRepository(session)

    @classmethod
    def _mask_sensitive_data(cls, data: dict[str, Any] | None) -> dict[str, Any] | None:
        """Mask sensitive fields and make values JSON serializable.

        Args:
            data: Dictionary that may contain sensitive fields

        Returns:
            Dictionary with sensitive values replaced by "[REDACTED]"
        """
        if data is None:
            return None

        masked: dict[str, Any] = {}
        for key, value in data.items():
            if key.lower() in cls.SENSITIVE_FIELDS:
                masked[key] = "[REDACTED]"
            elif isinstance(value, dict):
                masked[key] = cls._mask_sensitive_data(value)
            elif isinstance(value, (list, tuple, set, frozenset)):
                masked[key] = [
                    cls._mask_sensitive_data(item) if isinstance(item, dict) else cls._to_json(item)
                    for item in value
                ]
            else:
                masked[key] = cls._to_json(value)
        return masked

    @staticmethod
    def _to_json(value: Any) -> Any:
        if isinstance(value, (UUID, date, datetime)):
            return str(value)
        return value

    async def log(
        self,
        action: str,
        resource_type: str,
        resource_id: UUID | None = None,
        actor_id: UUID | None = None,
        changes: dict[str, Any] | None = None,
        request: Request | None = None,
    ) -> None:
        """Log an audit event.

        Args:
            action: Action performed (use AuditAction constants)
            resource_type: Type of resource (use ResourceType constants)
            resource_id: ID of the affected resource
            actor_id: Principal performing the action
            changes: Dictionary of changes made
            request: FastAPI request object (for extracting IP/user agent)
        """
        ip_address = None
        user_agent = None
        if request is not None:
            ip_address = self._get_client_ip(request)
            user_agent = request.headers.get("user-agent", "")

        await self.audit_repo.log(
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            actor_id=actor_id,
            changes=self._mask_sensitive_data(changes),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.debug(
            "Audit logged: action=%s resource=%s/%s actor=%s",
            action,
            resource_type,
            resource_id,
            actor_id,
        )

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP from request, honouring trusted proxies only."""
        return get_real_client_ip(request)
