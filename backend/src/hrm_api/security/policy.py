"""Role-derived permission policy.

This module is the only place where role membership is compared. Routers and
services ask the policy a question (``can(Action.X)``) instead of checking
roles themselves.

Decisions for scoped grants (manager rows) are provisional. The database
row-level security policies are the final authority on which rows a manager
may see or change; a denial there surfaces as ``PolicyDeniedError``.
"""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from hrm_api.exceptions import PermissionDeniedError
from hrm_api.models.domain.role import AppRole, RoleSet


class Action(StrEnum):
    """Actions subject to authorization."""

    VIEW_EMPLOYEES = "view_employees"
    CREATE_EMPLOYEE = "create_employee"
    EDIT_EMPLOYEE = "edit_employee"
    TERMINATE_EMPLOYEE = "terminate_employee"
    REACTIVATE_EMPLOYEE = "reactivate_employee"
    VIEW_ORG_STRUCTURE = "view_org_structure"
    EDIT_ORG_STRUCTURE = "edit_org_structure"
    CREATE_ORG_STRUCTURE = "create_org_structure"
    VIEW_USERS = "view_users"
    MODIFY_ROLES = "modify_roles"
    MANAGE_EMPLOYEE_LINKS = "manage_employee_links"


_ADMIN_HR = frozenset({AppRole.ADMIN, AppRole.HR_MANAGER})
_ADMIN_HR_MANAGER = frozenset({AppRole.ADMIN, AppRole.HR_MANAGER, AppRole.MANAGER})

# Roles granting each action. Roles are additive: holding any one suffices.
ACTION_GRANTS: dict[Action, frozenset[AppRole]] = {
    Action.VIEW_EMPLOYEES: frozenset(AppRole),
    Action.CREATE_EMPLOYEE: _ADMIN_HR,
    Action.EDIT_EMPLOYEE: _ADMIN_HR,
    Action.TERMINATE_EMPLOYEE: _ADMIN_HR_MANAGER,
    Action.REACTIVATE_EMPLOYEE: _ADMIN_HR,
    Action.VIEW_ORG_STRUCTURE: _ADMIN_HR_MANAGER,
    Action.EDIT_ORG_STRUCTURE: _ADMIN_HR_MANAGER,
    Action.CREATE_ORG_STRUCTURE: _ADMIN_HR,
    Action.VIEW_USERS: _ADMIN_HR,
    Action.MODIFY_ROLES: frozenset({AppRole.ADMIN}),
    Action.MANAGE_EMPLOYEE_LINKS: frozenset({AppRole.ADMIN}),
}

# Actions where a manager grant only covers the rows RLS lets them reach.
SCOPED_ACTIONS = frozenset({
    Action.VIEW_EMPLOYEES,
    Action.TERMINATE_EMPLOYEE,
    Action.VIEW_ORG_STRUCTURE,
    Action.EDIT_ORG_STRUCTURE,
})


@dataclass(frozen=True)
class PermissionPolicy:
    """Permission decisions for one principal and role set.

    Every method is a pure function of ``roles`` and ``principal_id``.
    """

    roles: RoleSet
    principal_id: UUID | None = None

    def has_role(self, role: AppRole) -> bool:
        """Check if the role set contains a role."""
        return role in self.roles

    def has_any_role(self, *roles: AppRole) -> bool:
        """Check if the role set contains any of the given roles."""
        return any(role in self.roles for role in roles)

    def can(self, action: Action) -> bool:
        """Check whether the role set grants an action.

        Args:
            action: Action to check

        Returns:
            True if any held role grants the action
        """
        return bool(self.roles & ACTION_GRANTS[action])

    def is_scoped(self, action: Action) -> bool:
        """Check whether a grant for an action is limited to a manager's scope.

        True when the only granting role held is ``manager``.
        """
        if action not in SCOPED_ACTIONS or not self.can(action):
            return False
        return not self.has_any_role(AppRole.ADMIN, AppRole.HR_MANAGER)

    def require(self, action: Action) -> None:
        """Raise PermissionDeniedError unless the action is granted.

        Args:
            action: Action to check

        Raises:
            PermissionDeniedError: If no held role grants the action
        """
        if not self.can(action):
            raise PermissionDeniedError(action.value)

    def can_view_employee(self, owner_principal_id: UUID | None) -> bool:
        """Check whether an employee row may be shown.

        Args:
            owner_principal_id: Principal linked to the employee row, if any

        Returns:
            True for admin, HR and managers (manager scope is left to RLS);
            for plain employees only their own record
        """
        if self.has_any_role(AppRole.ADMIN, AppRole.HR_MANAGER, AppRole.MANAGER):
            return True
        if AppRole.EMPLOYEE in self.roles:
            return owner_principal_id is not None and owner_principal_id == self.principal_id
        return False

    def can_view_users(self) -> bool:
        return self.can(Action.VIEW_USERS)

    def can_modify_roles(self) -> bool:
        return self.can(Action.MODIFY_ROLES)

    def can_view_hrm_data(self) -> bool:
        """Check access to HRM data beyond the principal's own record."""
        return self.has_any_role(AppRole.ADMIN, AppRole.HR_MANAGER, AppRole.MANAGER)

    def can_edit_employee(self) -> bool:
        return self.can(Action.EDIT_EMPLOYEE)
