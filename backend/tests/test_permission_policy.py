"""Permission policy tests.

The authorization matrix, role flag derivation and fail-closed behavior.
"""

from itertools import combinations
from uuid import uuid4

import pytest

from hrm_api.exceptions import PermissionDeniedError
from hrm_api.models.domain.role import ALL_ROLES, AppRole, to_role_set
from hrm_api.security.policy import ACTION_GRANTS, Action, PermissionPolicy
from hrm_api.services.role_resolution_service import derive_capability_flags

ADMIN = AppRole.ADMIN
HR = AppRole.HR_MANAGER
MANAGER = AppRole.MANAGER
EMPLOYEE = AppRole.EMPLOYEE

# Expected decisions per single role
MATRIX = {
    Action.VIEW_EMPLOYEES: {ADMIN, HR, MANAGER, EMPLOYEE},
    Action.CREATE_EMPLOYEE: {ADMIN, HR},
    Action.EDIT_EMPLOYEE: {ADMIN, HR},
    Action.TERMINATE_EMPLOYEE: {ADMIN, HR, MANAGER},
    Action.REACTIVATE_EMPLOYEE: {ADMIN, HR},
    Action.VIEW_ORG_STRUCTURE: {ADMIN, HR, MANAGER},
    Action.EDIT_ORG_STRUCTURE: {ADMIN, HR, MANAGER},
    Action.CREATE_ORG_STRUCTURE: {ADMIN, HR},
    Action.VIEW_USERS: {ADMIN, HR},
    Action.MODIFY_ROLES: {ADMIN},
    Action.MANAGE_EMPLOYEE_LINKS: {ADMIN},
}


def all_role_sets() -> list[frozenset[AppRole]]:
    return [
        frozenset(combo)
        for size in range(len(ALL_ROLES) + 1)
        for combo in combinations(ALL_ROLES, size)
    ]


class TestAuthorizationMatrix:
    """Test the action grants of each role."""

    def test_matrix_covers_every_action(self) -> None:
        assert set(ACTION_GRANTS) == set(Action)
        assert set(MATRIX) == set(Action)

    @pytest.mark.parametrize("action", list(Action))
    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_single_role_decisions(self, action: Action, role: AppRole) -> None:
        """Each role alone gets exactly the actions listed for it."""
        policy = PermissionPolicy(roles=frozenset({role}))
        assert policy.can(action) is (role in MATRIX[action])

    @pytest.mark.parametrize("roles", all_role_sets())
    def test_roles_are_additive(self, roles: frozenset[AppRole]) -> None:
        """A role set is granted an action when any of its roles is."""
        policy = PermissionPolicy(roles=roles)
        for action in Action:
            assert policy.can(action) is any(role in MATRIX[action] for role in roles)

    def test_admin_does_not_imply_hr_manager(self) -> None:
        policy = PermissionPolicy(roles=frozenset({ADMIN}))
        assert policy.has_role(ADMIN)
        assert not policy.has_role(HR)

    def test_hr_manager_cannot_modify_roles_or_links(self) -> None:
        policy = PermissionPolicy(roles=frozenset({HR}))
        assert policy.can_view_users()
        assert policy.can_edit_employee()
        assert not policy.can_modify_roles()
        assert not policy.can(Action.MANAGE_EMPLOYEE_LINKS)


class TestFailClosed:
    """Test that an empty role set is denied everything."""

    @pytest.mark.parametrize("action", list(Action))
    def test_empty_role_set_denied(self, action: Action) -> None:
        policy = PermissionPolicy(roles=frozenset(), principal_id=uuid4())
        assert not policy.can(action)
        with pytest.raises(PermissionDeniedError) as exc_info:
            policy.require(action)
        assert exc_info.value.details == {"action": action.value}

    def test_empty_role_set_cannot_modify_roles(self) -> None:
        policy = PermissionPolicy(roles=frozenset())
        assert policy.can_modify_roles() is False

    def test_empty_role_set_sees_no_employee(self) -> None:
        principal_id = uuid4()
        policy = PermissionPolicy(roles=frozenset(), principal_id=principal_id)
        assert not policy.can_view_employee(principal_id)
        assert not policy.can_view_hrm_data()


class TestEmployeeVisibility:
    """Test can_view_employee."""

    @pytest.mark.parametrize("role", [ADMIN, HR, MANAGER])
    def test_privileged_roles_see_any_employee(self, role: AppRole) -> None:
        policy = PermissionPolicy(roles=frozenset({role}), principal_id=uuid4())
        assert policy.can_view_employee(uuid4())
        assert policy.can_view_employee(None)

    def test_employee_sees_only_own_record(self) -> None:
        principal_id = uuid4()
        policy = PermissionPolicy(roles=frozenset({EMPLOYEE}), principal_id=principal_id)
        assert policy.can_view_employee(principal_id)
        assert not policy.can_view_employee(uuid4())
        assert not policy.can_view_employee(None)

    def test_employee_without_principal_id_sees_nothing(self) -> None:
        policy = PermissionPolicy(roles=frozenset({EMPLOYEE}))
        assert not policy.can_view_employee(None)


class TestScopedGrants:
    """Test provisional manager grants."""

    def test_manager_grant_is_scoped(self) -> None:
        policy = PermissionPolicy(roles=frozenset({MANAGER}))
        assert policy.is_scoped(Action.TERMINATE_EMPLOYEE)
        assert policy.is_scoped(Action.EDIT_ORG_STRUCTURE)

    def test_manager_with_hr_role_is_not_scoped(self) -> None:
        policy = PermissionPolicy(roles=frozenset({MANAGER, HR}))
        assert not policy.is_scoped(Action.TERMINATE_EMPLOYEE)

    def test_denied_action_is_not_scoped(self) -> None:
        policy = PermissionPolicy(roles=frozenset({MANAGER}))
        assert not policy.is_scoped(Action.REACTIVATE_EMPLOYEE)


class TestPurity:
    """Test that decisions depend only on inputs."""

    @pytest.mark.parametrize("roles", all_role_sets())
    def test_identical_inputs_identical_decisions(self, roles: frozenset[AppRole]) -> None:
        principal_id = uuid4()
        first = PermissionPolicy(roles=roles, principal_id=principal_id)
        second = PermissionPolicy(roles=frozenset(roles), principal_id=principal_id)
        assert [first.can(a) for a in Action] == [second.can(a) for a in Action]
        assert first == second

    def test_policy_is_immutable(self) -> None:
        policy = PermissionPolicy(roles=frozenset({EMPLOYEE}))
        with pytest.raises(AttributeError):
            policy.roles = frozenset({ADMIN})  # type: ignore[misc]


class TestCapabilityFlags:
    """Test role flag derivation."""

    def test_empty_roles(self) -> None:
        flags = derive_capability_flags(frozenset())
        assert not any(flags.model_dump().values())

    def test_each_flag_follows_its_role(self) -> None:
        flags = derive_capability_flags(frozenset({ADMIN, EMPLOYEE}))
        assert flags.is_admin
        assert flags.is_employee
        assert not flags.is_hr_manager
        assert not flags.is_manager

    def test_all_roles(self) -> None:
        flags = derive_capability_flags(frozenset(ALL_ROLES))
        assert all(flags.model_dump().values())


class TestRoleSetParsing:
    """Test conversion of stored role strings."""

    def test_known_roles(self) -> None:
        assert to_role_set(["admin", "manager"]) == frozenset({ADMIN, MANAGER})

    def test_unknown_roles_dropped(self) -> None:
        assert to_role_set(["superuser", "employee"]) == frozenset({EMPLOYEE})

    def test_duplicates_collapse(self) -> None:
        assert to_role_set(["hr_manager", "hr_manager"]) == frozenset({HR})
