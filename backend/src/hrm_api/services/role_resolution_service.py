"""Role resolution service.

Turns an authenticated principal into its authoritative role set. Roles are
looked up on every request and never cached, so a role change or a different
principal on the next request is always seen.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hrm_api.exceptions import RolesUnavailableError
from hrm_api.models.domain.principal import AuthContext, AuthStatus, Principal, SessionState
from hrm_api.models.domain.role import AppRole, CapabilityFlags, RoleSet, to_role_set
from hrm_api.repositories.principal_repository import PrincipalRepository
from hrm_api.repositories.role_repository import RoleRepository
from hrm_api.security.rls import bind_principal
from hrm_api.utils.secure_logging import log_error

logger = logging.getLogger(__name__)


def derive_capability_flags(roles: RoleSet) -> CapabilityFlags:
    """Derive boolean role flags from a role set.

    Args:
        roles: Resolved role set

    Returns:
        CapabilityFlags with one flag per role
    """
    return CapabilityFlags(
        is_admin=AppRole.ADMIN in roles,
        is_hr_manager=AppRole.HR_MANAGER in roles,
        is_manager=AppRole.MANAGER in roles,
        is_employee=AppRole.EMPLOYEE in roles,
    )


class RoleResolutionService:
    """Service resolving the roles of the requesting principal."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.role_repo = RoleRepository(session)
        self.principal_repo = PrincipalRepository(session)

    async def register_principal(self, principal: Principal) -> None:
        """Bind the principal to the session and record it locally.

        Binding exposes the principal to row-level security. Registration
        keeps the local principal mirror complete for the users directory.

        Args:
            principal: Authenticated principal of the current request

        Raises:
            RolesUnavailableError: If the database cannot be reached
        """
        try:
            await bind_principal(self.session, principal.id)
            await self.principal_repo.ensure(principal.id, principal.email)
        except (SQLAlchemyError, OSError) as e:
            log_error(logger, f"Failed to register principal {principal.id}", e)
            raise RolesUnavailableError(str(principal.id)) from e

    async def resolve_roles(self, principal_id: UUID) -> RoleSet:
        """Fetch the role set of a principal.

        An empty result is a legitimate empty role set. A failing lookup is
        not: it raises instead of degrading to "no roles".

        Args:
            principal_id: Principal UUID

        Returns:
            Role set, possibly empty

        Raises:
            RolesUnavailableError: If the role store cannot be queried
        """
        try:
            role_values = await self.role_repo.get_roles_for_user(principal_id)
        except (SQLAlchemyError, OSError) as e:
            log_error(logger, f"Failed to resolve roles for principal {principal_id}", e)
            raise RolesUnavailableError(str(principal_id)) from e
        return to_role_set(role_values)

    async def build_auth_context(self, principal: Principal) -> AuthContext:
        """Build the request-scoped auth context for a principal.

        Args:
            principal: Authenticated principal of the current request

        Returns:
            AuthContext carrying freshly resolved roles

        Raises:
            RolesUnavailableError: If roles cannot be resolved
        """
        await self.register_principal(principal)
        roles = await self.resolve_roles(principal.id)
        return AuthContext(principal=principal, roles=roles)

    async def session_state(self, principal: Principal | None) -> SessionState:
        """Describe the authentication state for a client.

        Unlike ``build_auth_context`` this reports a role lookup failure in
        ``roles_error`` instead of raising, so a client can tell a valid
        session without roles apart from a signed-out one.

        Args:
            principal: Authenticated principal, or None when signed out

        Returns:
            SessionState
        """
        if principal is None:
            return SessionState(status=AuthStatus.UNAUTHENTICATED)

        try:
            await self.register_principal(principal)
            roles = await self.resolve_roles(principal.id)
        except RolesUnavailableError as e:
            await self.session.rollback()
            return SessionState(
                status=AuthStatus.AUTHENTICATED,
                principal=principal,
                roles_error=e.message,
            )

        return SessionState(
            status=AuthStatus.AUTHENTICATED,
            principal=principal,
            roles=sorted(roles),
        )
