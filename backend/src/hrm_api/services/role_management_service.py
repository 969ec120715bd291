"""Role and employee link management service.

Keeps the invariant that every principal holding at least one role is linked
to exactly one employee record:

- a role can only be granted to a linked principal,
- a principal holding roles cannot be unlinked,
- linking never strands another principal that holds roles.
"""

import logging
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hrm_api.exceptions import (
    EmployeeLinkConflictError,
    EmployeeNotFoundError,
    HrmAPIError,
    UserNotFoundError,
    ValidationError,
)
from hrm_api.models.domain.principal import AuthContext
from hrm_api.models.domain.role import ALL_ROLES, AppRole, to_role_set
from hrm_api.models.dto.user import UserAccessChangeSummary
from hrm_api.models.orm.employee import EmployeeORM
from hrm_api.repositories.employee_repository import EmployeeRepository
from hrm_api.repositories.principal_repository import PrincipalRepository
from hrm_api.repositories.role_repository import RoleRepository
from hrm_api.security.policy import Action
from hrm_api.services.audit_service import AuditAction, AuditService, ResourceType

logger = logging.getLogger(__name__)

ROLES_REQUIRE_LINK = "Users with roles must be linked to an employee record."


class RoleManagementService:
    """Service for role grants and principal/employee links."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.role_repo = RoleRepository(session)
        self.employee_repo = EmployeeRepository(session)
        self.principal_repo = PrincipalRepository(session)
        self.audit_service = AuditService(session)

    async def _require_principal(self, user_id: UUID) -> None:
        if await self.principal_repo.get(user_id) is None:
            raise UserNotFoundError(str(user_id))

    async def _get_link_target(self, user_id: UUID, employee_id: UUID) -> EmployeeORM:
        """Load an employee to link and check it can be taken over.

        Raises:
            EmployeeNotFoundError: If the employee does not exist
            EmployeeLinkConflictError: If another principal with roles holds it
        """
        employee = await self.employee_repo.get(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        if employee.user_id is not None and employee.user_id != user_id:
            if await self.role_repo.count_for_user(employee.user_id) > 0:
                raise EmployeeLinkConflictError(str(employee_id))
        return employee

    async def _link(
        self,
        user_id: UUID,
        employee: EmployeeORM,
        ctx: AuthContext,
        request: Request | None,
    ) -> bool:
        """Link a principal to an employee, clearing its previous link first."""
        if employee.user_id == user_id:
            return False

        previous = await self.employee_repo.clear_user_link(user_id)
        replaced_user_id = employee.user_id
        await self.employee_repo.set_user_link(employee, user_id, ctx.principal_id)

        await self.audit_service.log(
            action=AuditAction.EMPLOYEE_LINK,
            resource_type=ResourceType.USER,
            resource_id=user_id,
            actor_id=ctx.principal_id,
            changes={
                "employee_id": employee.id,
                "previous_employee_id": previous.id if previous else None,
                "replaced_user_id": replaced_user_id,
            },
            request=request,
        )
        return True

    async def _unlink(self, user_id: UUID, ctx: AuthContext, request: Request | None) -> bool:
        previous = await self.employee_repo.clear_user_link(user_id)
        if previous is None:
            return False

        await self.audit_service.log(
            action=AuditAction.EMPLOYEE_UNLINK,
            resource_type=ResourceType.USER,
            resource_id=user_id,
            actor_id=ctx.principal_id,
            changes={"previous_employee_id": previous.id},
            request=request,
        )
        return True

    async def _grant(
        self, user_id: UUID, role: AppRole, ctx: AuthContext, request: Request | None
    ) -> bool:
        added = await self.role_repo.add_role(user_id, role.value, created_by=ctx.principal_id)
        if added:
            await self.audit_service.log(
                action=AuditAction.ROLE_ASSIGN,
                resource_type=ResourceType.ROLE,
                resource_id=user_id,
                actor_id=ctx.principal_id,
                changes={"role": role.value},
                request=request,
            )
        return added

    async def _revoke(
        self, user_id: UUID, role: AppRole, ctx: AuthContext, request: Request | None
    ) -> bool:
        removed = await self.role_repo.remove_role(user_id, role.value)
        if removed:
            await self.audit_service.log(
                action=AuditAction.ROLE_REVOKE,
                resource_type=ResourceType.ROLE,
                resource_id=user_id,
                actor_id=ctx.principal_id,
                changes={"role": role.value},
                request=request,
            )
        return removed

    async def assign_role(
        self,
        user_id: UUID,
        role: AppRole,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> bool:
        """Grant a role. Granting a held role is a no-op.

        Args:
            user_id: Target principal
            role: Role to grant
            ctx: Auth context of the actor
            request: HTTP request for audit metadata

        Returns:
            True if the role was newly granted

        Raises:
            PermissionDeniedError: If the actor may not modify roles
            UserNotFoundError: If the principal is unknown
            ValidationError: If the principal is not linked to an employee
        """
        ctx.policy.require(Action.MODIFY_ROLES)
        await self._require_principal(user_id)

        if await self.employee_repo.get_by_user_id(user_id) is None:
            raise ValidationError(ROLES_REQUIRE_LINK, {"employee_id": ROLES_REQUIRE_LINK})

        return await self._grant(user_id, role, ctx, request)

    async def remove_role(
        self,
        user_id: UUID,
        role: AppRole,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> bool:
        """Revoke a role. Revoking a role that is not held is a no-op.

        Returns:
            True if the role was removed

        Raises:
            PermissionDeniedError: If the actor may not modify roles
            UserNotFoundError: If the principal is unknown
        """
        ctx.policy.require(Action.MODIFY_ROLES)
        await self._require_principal(user_id)
        return await self._revoke(user_id, role, ctx, request)

    async def set_employee_link(
        self,
        user_id: UUID,
        employee_id: UUID | None,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> bool:
        """Link a principal to an employee, or unlink it with None.

        Setting the current link again changes nothing.

        Args:
            user_id: Target principal
            employee_id: Employee to link, or None to unlink
            ctx: Auth context of the actor
            request: HTTP request for audit metadata

        Returns:
            True if the link changed

        Raises:
            PermissionDeniedError: If the actor may not manage links
            UserNotFoundError: If the principal is unknown
            EmployeeNotFoundError: If the employee does not exist
            EmployeeLinkConflictError: If another principal with roles holds the employee
            ValidationError: If unlinking a principal that holds roles
        """
        ctx.policy.require(Action.MANAGE_EMPLOYEE_LINKS)
        await self._require_principal(user_id)

        if employee_id is None:
            if await self.role_repo.count_for_user(user_id) > 0:
                raise ValidationError(ROLES_REQUIRE_LINK, {"employee_id": ROLES_REQUIRE_LINK})
            return await self._unlink(user_id, ctx, request)

        employee = await self._get_link_target(user_id, employee_id)
        return await self._link(user_id, employee, ctx, request)

    async def save_user_access(
        self,
        user_id: UUID,
        target_roles: list[AppRole] | set[AppRole],
        target_employee_id: UUID | None,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> UserAccessChangeSummary:
        """Bring a principal's roles and employee link to a target state.

        The target state is validated before anything is written. Changes
        are then applied so the role/link invariant holds after every step:
        link first, then grants, then revokes, then unlink. Any failure
        rolls the whole change back.

        Args:
            user_id: Target principal
            target_roles: Roles the principal should end up with
            target_employee_id: Employee the principal should be linked to
            ctx: Auth context of the actor
            request: HTTP request for audit metadata

        Returns:
            Summary of applied changes

        Raises:
            PermissionDeniedError: If the actor may not modify roles or links
            UserNotFoundError: If the principal is unknown
            ValidationError: If the target has roles but no employee
            EmployeeNotFoundError: If the target employee does not exist
            EmployeeLinkConflictError: If another principal with roles holds the employee
        """
        policy = ctx.policy
        policy.require(Action.MODIFY_ROLES)
        await self._require_principal(user_id)

        target = frozenset(target_roles)
        current = to_role_set(await self.role_repo.get_roles_for_user(user_id))
        current_employee = await self.employee_repo.get_by_user_id(user_id)
        current_employee_id = current_employee.id if current_employee else None

        to_add = [role for role in ALL_ROLES if role in target and role not in current]
        to_remove = [role for role in ALL_ROLES if role in current and role not in target]
        link_changes = target_employee_id != current_employee_id

        if link_changes:
            policy.require(Action.MANAGE_EMPLOYEE_LINKS)
        if target and target_employee_id is None:
            raise ValidationError(ROLES_REQUIRE_LINK, {"employee_id": ROLES_REQUIRE_LINK})
        target_employee = None
        if link_changes and target_employee_id is not None:
            target_employee = await self._get_link_target(user_id, target_employee_id)

        try:
            if target_employee is not None:
                await self._link(user_id, target_employee, ctx, request)
            for role in to_add:
                await self._grant(user_id, role, ctx, request)
            for role in to_remove:
                await self._revoke(user_id, role, ctx, request)
            if link_changes and target_employee_id is None:
                await self._unlink(user_id, ctx, request)
        except (SQLAlchemyError, HrmAPIError):
            await self.session.rollback()
            logger.warning(f"User access update for {user_id} failed and was rolled back")
            raise

        logger.info(
            f"User access for {user_id} updated by {ctx.principal_id}: "
            f"+{[r.value for r in to_add]} -{[r.value for r in to_remove]} link_changed={link_changes}"
        )
        return UserAccessChangeSummary(
            roles_added=to_add,
            roles_removed=to_remove,
            link_changed=link_changes,
        )
