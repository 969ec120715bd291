"""Employee lifecycle service.

State machine for employment status changes:

    active / inactive / on_leave --terminate--> terminated
    terminated --reactivate--> active

Termination and reactivation each stamp their own audit fields. Reactivation
keeps the termination audit trail and only clears ``termination_date``, since
an active employee cannot carry one.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrm_api.config import get_settings
from hrm_api.exceptions import (
    EmployeeAlreadyTerminatedError,
    EmployeeNotFoundError,
    EmployeeNotTerminatedError,
    ValidationError,
)
from hrm_api.models.domain.employee import EmploymentStatus
from hrm_api.models.domain.principal import AuthContext
from hrm_api.models.domain.role import AppRole
from hrm_api.models.orm.employee import EmployeeORM
from hrm_api.repositories.employee_repository import EmployeeRepository
from hrm_api.security.policy import Action
from hrm_api.services.audit_service import AuditAction, AuditService, ResourceType
from hrm_api.utils.validation import normalize_reason

logger = logging.getLogger(__name__)

ACTIVE_WITH_TERMINATION_DATE = 'An employee with a termination date cannot have status "Active".'
CLEAR_TERMINATION_DATE = 'Clear this date or change status from "Active".'


def business_today() -> date:
    """Current date in the configured business timezone."""
    return datetime.now(get_settings().tzinfo).date()


def reason_too_long_message(max_length: int) -> str:
    return f"Reason must be {max_length} characters or less."


def validate_termination(
    termination_date: date,
    reason: str | None,
    today: date,
    max_reason_length: int,
) -> str | None:
    """Validate termination input.

    Args:
        termination_date: Requested last working day
        reason: Raw reason text
        today: Current business date
        max_reason_length: Maximum reason length

    Returns:
        Normalized reason (None when blank)

    Raises:
        ValidationError: If the date is in the future or the reason too long
    """
    fields: dict[str, str] = {}
    if termination_date > today:
        fields["termination_date"] = "Termination date cannot be in the future."

    reason = normalize_reason(reason)
    if reason is not None and len(reason) > max_reason_length:
        fields["reason"] = reason_too_long_message(max_reason_length)

    if fields:
        raise ValidationError("Invalid termination request", fields)
    return reason


def validate_reactivation(
    reason: str | None,
    ctx: AuthContext,
    max_reason_length: int,
) -> str | None:
    """Validate reactivation input.

    HR managers without the admin role must state a reason.

    Args:
        reason: Raw reason text
        ctx: Auth context of the actor
        max_reason_length: Maximum reason length

    Returns:
        Normalized reason (None when blank)

    Raises:
        ValidationError: If a required reason is missing or the reason too long
    """
    reason = normalize_reason(reason)
    policy = ctx.policy
    if reason is None:
        if policy.has_role(AppRole.HR_MANAGER) and not policy.has_role(AppRole.ADMIN):
            raise ValidationError(
                "Invalid reactivation request",
                {"reason": "Reactivation reason is required."},
            )
        return None

    if len(reason) > max_reason_length:
        raise ValidationError(
            "Invalid reactivation request",
            {"reason": reason_too_long_message(max_reason_length)},
        )
    return reason


def apply_employee_patch(
    employee_id: UUID | None,
    current: Mapping[str, Any],
    patch: Mapping[str, Any],
) -> dict[str, Any]:
    """Apply the field coupling rules to an employee edit.

    Choosing ``terminated`` forces ``is_active`` off regardless of the
    submitted value. The resulting record must not be ``active`` while
    carrying a termination date, must not manage itself, and must keep its
    org unit and position.

    Args:
        employee_id: ID of the edited employee (None when creating)
        current: Current field values
        patch: Submitted field values (only fields present in the request)

    Returns:
        Field changes to write

    Raises:
        ValidationError: If the resulting record would violate an invariant
    """
    changes = dict(patch)
    merged = {**current, **changes}

    status = merged.get("employment_status")
    if status == EmploymentStatus.TERMINATED:
        changes["is_active"] = False
        merged["is_active"] = False

    fields: dict[str, str] = {}

    if status == EmploymentStatus.ACTIVE and merged.get("termination_date") is not None:
        fields["employment_status"] = ACTIVE_WITH_TERMINATION_DATE
        fields["termination_date"] = CLEAR_TERMINATION_DATE

    manager_id = merged.get("manager_id")
    if employee_id is not None and manager_id is not None and manager_id == employee_id:
        fields["manager_id"] = "An employee cannot be their own manager."

    for key, label in (("org_unit_id", "Organization unit"), ("position_id", "Position")):
        if key in changes and changes[key] is None:
            fields[key] = f"{label} is required."

    if fields:
        raise ValidationError("Employee data is invalid", fields)

    return changes


class EmployeeLifecycleService:
    """Service for employee termination and reactivation."""

    def __init__(
        self,
        session: AsyncSession,
        today_provider: Callable[[], date] | None = None,
    ) -> None:
        """Initialize service with database session.

        Args:
            session: Database session
            today_provider: Returns the current business date
        """
        self.session = session
        self.employee_repo = EmployeeRepository(session)
        self.audit_service = AuditService(session)
        self.today_provider = today_provider or business_today
        self.max_reason_length = get_settings().reason_max_length

    async def _get_visible(self, employee_id: UUID, ctx: AuthContext) -> EmployeeORM:
        employee = await self.employee_repo.get(employee_id)
        if employee is None or not ctx.policy.can_view_employee(employee.user_id):
            raise EmployeeNotFoundError(str(employee_id))
        return employee

    async def terminate(
        self,
        employee_id: UUID,
        termination_date: date,
        reason: str | None,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> EmployeeORM:
        """Terminate an employee.

        Args:
            employee_id: Employee UUID
            termination_date: Last working day, not after today
            reason: Optional reason
            ctx: Auth context of the actor
            request: HTTP request for audit metadata

        Returns:
            Updated employee

        Raises:
            PermissionDeniedError: If the actor may not terminate employees
            EmployeeNotFoundError: If the employee is missing or not visible
            EmployeeAlreadyTerminatedError: If the employee is already terminated
            ValidationError: If the date or reason is invalid
            PolicyDeniedError: If the database refuses the update
        """
        ctx.policy.require(Action.TERMINATE_EMPLOYEE)
        employee = await self._get_visible(employee_id, ctx)

        if employee.employment_status == EmploymentStatus.TERMINATED:
            raise EmployeeAlreadyTerminatedError(str(employee_id))

        reason = validate_termination(
            termination_date, reason, self.today_provider(), self.max_reason_length
        )

        previous_status = employee.employment_status
        employee.employment_status = EmploymentStatus.TERMINATED.value
        employee.is_active = False
        employee.termination_date = termination_date
        employee.termination_reason = reason
        employee.terminated_by = ctx.principal_id
        employee.terminated_at = datetime.now(timezone.utc)
        employee.updated_by = ctx.principal_id
        employee = await self.employee_repo.save(employee)

        await self.audit_service.log(
            action=AuditAction.EMPLOYEE_TERMINATE,
            resource_type=ResourceType.EMPLOYEE,
            resource_id=employee.id,
            actor_id=ctx.principal_id,
            changes={
                "previous_status": previous_status,
                "termination_date": termination_date,
                "reason": reason,
            },
            request=request,
        )
        logger.info(f"Employee {employee.id} terminated by {ctx.principal_id}")
        return employee

    async def reactivate(
        self,
        employee_id: UUID,
        reason: str | None,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> EmployeeORM:
        """Reactivate a terminated employee.

        Args:
            employee_id: Employee UUID
            reason: Reason, required for HR managers who are not admins
            ctx: Auth context of the actor
            request: HTTP request for audit metadata

        Returns:
            Updated employee

        Raises:
            PermissionDeniedError: If the actor may not reactivate employees
            EmployeeNotFoundError: If the employee is missing or not visible
            EmployeeNotTerminatedError: If the employee is not terminated
            ValidationError: If the reason is missing or too long
            PolicyDeniedError: If the database refuses the update
        """
        ctx.policy.require(Action.REACTIVATE_EMPLOYEE)
        employee = await self._get_visible(employee_id, ctx)

        if employee.employment_status != EmploymentStatus.TERMINATED:
            raise EmployeeNotTerminatedError(str(employee_id))

        reason = validate_reactivation(reason, ctx, self.max_reason_length)

        previous_termination_date = employee.termination_date
        employee.employment_status = EmploymentStatus.ACTIVE.value
        employee.is_active = True
        employee.termination_date = None
        employee.reactivation_reason = reason
        employee.reactivated_by = ctx.principal_id
        employee.reactivated_at = datetime.now(timezone.utc)
        employee.updated_by = ctx.principal_id
        employee = await self.employee_repo.save(employee)

        await self.audit_service.log(
            action=AuditAction.EMPLOYEE_REACTIVATE,
            resource_type=ResourceType.EMPLOYEE,
            resource_id=employee.id,
            actor_id=ctx.principal_id,
            changes={
                "previous_termination_date": previous_termination_date,
                "reason": reason,
            },
            request=request,
        )
        logger.info(f"Employee {employee.id} reactivated by {ctx.principal_id}")
        return employee
