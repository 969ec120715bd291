"""Principal and authentication state domain models."""

from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from hrm_api.models.domain.role import EMPTY_ROLES, AppRole, RoleSet
from hrm_api.security.policy import PermissionPolicy


class Principal(BaseModel):
    """An authenticated identity from the external identity provider."""

    id: UUID
    email: str | None = None

    model_config = ConfigDict(frozen=True)


class AuthStatus(StrEnum):
    """Authentication loading state."""

    CHECKING = "checking"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class SessionState(BaseModel):
    """Authentication state as seen by a client.

    ``roles_error`` marks the hybrid failure: a valid session whose roles
    could not be loaded. Privileged content must not be shown in that case.
    """

    status: AuthStatus
    principal: Principal | None = None
    roles: list[AppRole] = []
    roles_error: str | None = None

    @property
    def can_render_privileged(self) -> bool:
        """Whether role-dependent content may be shown."""
        return self.status == AuthStatus.AUTHENTICATED and self.roles_error is None


class AuthContext(BaseModel):
    """Request-scoped principal plus its freshly resolved roles."""

    principal: Principal
    roles: RoleSet = EMPTY_ROLES

    model_config = ConfigDict(frozen=True)

    @property
    def principal_id(self) -> UUID:
        return self.principal.id

    @property
    def policy(self) -> PermissionPolicy:
        """Permission policy bound to this principal and role set."""
        return PermissionPolicy(roles=self.roles, principal_id=self.principal.id)
