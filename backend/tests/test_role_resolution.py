"""Role resolution service tests."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from hrm_api.exceptions import RolesUnavailableError
from hrm_api.models.domain.principal import AuthStatus, Principal, SessionState
from hrm_api.models.domain.role import AppRole
from hrm_api.models.orm import PrincipalORM
from hrm_api.repositories.principal_repository import LAST_SEEN_RESOLUTION
from hrm_api.services.role_resolution_service import RoleResolutionService


class FailingRoleRepository:
    """Role repository whose store is unreachable."""

    async def get_roles_for_user(self, user_id):
        raise OperationalError("SELECT role FROM user_roles", {}, ConnectionRefusedError("refused"))


class TestResolveRoles:
    """Test role lookup."""

    async def test_returns_stored_roles(self, session, data) -> None:
        principal = await data.principal()
        await data.grant(principal.id, AppRole.MANAGER, AppRole.EMPLOYEE)

        roles = await RoleResolutionService(session).resolve_roles(principal.id)

        assert roles == frozenset({AppRole.MANAGER, AppRole.EMPLOYEE})

    async def test_no_roles_is_empty_set(self, session, data) -> None:
        principal = await data.principal()

        roles = await RoleResolutionService(session).resolve_roles(principal.id)

        assert roles == frozenset()

    async def test_lookup_failure_raises(self, session) -> None:
        service = RoleResolutionService(session)
        service.role_repo = FailingRoleRepository()

        with pytest.raises(RolesUnavailableError):
            await service.resolve_roles(uuid4())

    async def test_roles_are_not_cached(self, session, data) -> None:
        """A grant made after the first lookup is seen by the next one."""
        principal = await data.principal()
        service = RoleResolutionService(session)

        assert await service.resolve_roles(principal.id) == frozenset()
        await data.grant(principal.id, AppRole.HR_MANAGER)
        assert await service.resolve_roles(principal.id) == frozenset({AppRole.HR_MANAGER})


class TestBuildAuthContext:
    """Test request auth context construction."""

    async def test_registers_unknown_principal(self, session) -> None:
        principal = Principal(id=uuid4(), email="new@example.com")

        ctx = await RoleResolutionService(session).build_auth_context(principal)

        assert ctx.principal == principal
        assert ctx.roles == frozenset()
        stored = (
            await session.execute(select(PrincipalORM).where(PrincipalORM.id == principal.id))
        ).scalar_one()
        assert stored.email == "new@example.com"
        assert stored.last_seen_at is not None

    async def test_updates_known_principal_email(self, session, data) -> None:
        existing = await data.principal(email="old@example.com")
        await data.grant(existing.id, AppRole.ADMIN)

        ctx = await RoleResolutionService(session).build_auth_context(
            Principal(id=existing.id, email="renamed@example.com")
        )

        assert ctx.roles == frozenset({AppRole.ADMIN})
        assert existing.email == "renamed@example.com"

    async def test_repeat_request_does_not_write(self, session) -> None:
        principal = Principal(id=uuid4(), email="steady@example.com")
        service = RoleResolutionService(session)
        await service.build_auth_context(principal)
        stored = await session.get(PrincipalORM, principal.id)
        first_seen = stored.last_seen_at

        await service.build_auth_context(principal)

        assert stored.last_seen_at == first_seen
        assert not session.dirty

    async def test_stale_last_seen_is_refreshed(self, session, data) -> None:
        existing = await data.principal(email="back@example.com")
        existing.last_seen_at = datetime.now(timezone.utc) - LAST_SEEN_RESOLUTION - timedelta(minutes=1)
        await session.flush()
        before = existing.last_seen_at

        await RoleResolutionService(session).build_auth_context(
            Principal(id=existing.id, email="back@example.com")
        )

        assert existing.last_seen_at > before

    async def test_contexts_do_not_leak_between_principals(self, session, data) -> None:
        """Switching principal yields the new principal's roles only."""
        admin = await data.principal()
        await data.grant(admin.id, AppRole.ADMIN)
        employee = await data.principal()
        await data.grant(employee.id, AppRole.EMPLOYEE)
        service = RoleResolutionService(session)

        first = await service.build_auth_context(Principal(id=admin.id))
        second = await service.build_auth_context(Principal(id=employee.id))

        assert first.roles == frozenset({AppRole.ADMIN})
        assert second.roles == frozenset({AppRole.EMPLOYEE})
        assert not second.policy.can_modify_roles()

    async def test_failure_raises_instead_of_empty_roles(self, session) -> None:
        service = RoleResolutionService(session)
        service.role_repo = FailingRoleRepository()

        with pytest.raises(RolesUnavailableError):
            await service.build_auth_context(Principal(id=uuid4()))


class TestSessionState:
    """Test client-facing session state."""

    async def test_signed_out(self, session) -> None:
        state = await RoleResolutionService(session).session_state(None)

        assert state.status == AuthStatus.UNAUTHENTICATED
        assert state.principal is None
        assert not state.can_render_privileged

    async def test_signed_in_with_roles(self, session, data) -> None:
        principal = await data.principal()
        await data.grant(principal.id, AppRole.HR_MANAGER, AppRole.EMPLOYEE)

        state = await RoleResolutionService(session).session_state(Principal(id=principal.id))

        assert state.status == AuthStatus.AUTHENTICATED
        assert state.roles == [AppRole.EMPLOYEE, AppRole.HR_MANAGER]
        assert state.roles_error is None
        assert state.can_render_privileged

    async def test_hybrid_failure_blocks_privileged_content(self, session) -> None:
        """A valid session with unloadable roles is not treated as 'no roles'."""
        service = RoleResolutionService(session)
        service.role_repo = FailingRoleRepository()

        state = await service.session_state(Principal(id=uuid4()))

        assert state.status == AuthStatus.AUTHENTICATED
        assert state.roles == []
        assert state.roles_error is not None
        assert not state.can_render_privileged

    def test_checking_state_cannot_render(self) -> None:
        assert not SessionState(status=AuthStatus.CHECKING).can_render_privileged
