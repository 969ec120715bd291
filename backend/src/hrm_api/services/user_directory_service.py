"""Users and roles directory service."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hrm_api.exceptions import UserNotFoundError
from hrm_api.models.domain.principal import AuthContext
from hrm_api.models.domain.role import to_role_set
from hrm_api.models.dto.user import (
    LinkedEmployeeInfo,
    LinkCandidateOption,
    UserListItem,
    UserListResponse,
)
from hrm_api.models.orm.employee import EmployeeORM
from hrm_api.models.orm.principal import PrincipalORM
from hrm_api.repositories.employee_repository import EmployeeRepository
from hrm_api.repositories.org_unit_repository import OrgUnitRepository
from hrm_api.repositories.position_repository import PositionRepository
from hrm_api.repositories.principal_repository import PrincipalRepository
from hrm_api.repositories.role_repository import RoleRepository
from hrm_api.security.policy import Action
from hrm_api.services.employee_service import full_name


class UserDirectoryService:
    """Service listing principals with their roles and linked employees."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.principal_repo = PrincipalRepository(session)
        self.role_repo = RoleRepository(session)
        self.employee_repo = EmployeeRepository(session)
        self.org_unit_repo = OrgUnitRepository(session)
        self.position_repo = PositionRepository(session)

    @staticmethod
    def _to_item(
        principal: PrincipalORM,
        roles: list[str],
        employee: EmployeeORM | None,
        org_unit_name: str | None = None,
        position_title: str | None = None,
    ) -> UserListItem:
        linked = None
        if employee is not None:
            linked = LinkedEmployeeInfo(
                id=employee.id,
                code=employee.employee_code,
                name=full_name(employee),
                org_unit_name=org_unit_name,
                position_title=position_title,
            )
        return UserListItem(
            id=principal.id,
            email=principal.email,
            roles=sorted(to_role_set(roles)),
            employee=linked,
            created_at=principal.created_at,
            last_seen_at=principal.last_seen_at,
        )

    async def list_users(self, ctx: AuthContext) -> UserListResponse:
        """List every known principal with roles and linked employee.

        Raises:
            PermissionDeniedError: If the actor may not view users
        """
        ctx.policy.require(Action.VIEW_USERS)

        principals = await self.principal_repo.list_all()
        ids = [p.id for p in principals]
        roles = await self.role_repo.get_roles_for_users(ids)
        employees = await self.employee_repo.get_by_user_ids(ids)

        items = [
            self._to_item(p, roles.get(p.id, []), employees.get(p.id))
            for p in principals
        ]
        return UserListResponse(items=items, total=len(items))

    async def get_user(self, user_id: UUID, ctx: AuthContext) -> UserListItem:
        """Get one principal with its linked employee's org unit and position.

        Raises:
            PermissionDeniedError: If the actor may not view users
            UserNotFoundError: If the principal is unknown
        """
        ctx.policy.require(Action.VIEW_USERS)

        principal = await self.principal_repo.get(user_id)
        if principal is None:
            raise UserNotFoundError(str(user_id))

        roles = await self.role_repo.get_roles_for_user(user_id)
        employee = await self.employee_repo.get_by_user_id(user_id)

        org_unit_name = None
        position_title = None
        if employee is not None:
            if employee.org_unit_id:
                org_unit = await self.org_unit_repo.get(employee.org_unit_id)
                org_unit_name = org_unit.name if org_unit else None
            if employee.position_id:
                position = await self.position_repo.get(employee.position_id)
                position_title = position.title if position else None

        return self._to_item(principal, roles, employee, org_unit_name, position_title)

    async def list_link_candidates(self, ctx: AuthContext) -> list[LinkCandidateOption]:
        """List active employees a principal could be linked to.

        Already linked employees are included with their ``user_id`` so a
        link can be moved from a user without roles.

        Raises:
            PermissionDeniedError: If the actor may not manage links
        """
        ctx.policy.require(Action.MANAGE_EMPLOYEE_LINKS)
        employees = await self.employee_repo.get_active()
        return [
            LinkCandidateOption(
                id=e.id,
                code=e.employee_code,
                name=full_name(e),
                user_id=e.user_id,
            )
            for e in employees
        ]
