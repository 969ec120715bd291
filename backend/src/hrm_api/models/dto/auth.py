"""Authentication DTOs."""

from uuid import UUID

from pydantic import BaseModel

from hrm_api.models.domain.principal import AuthStatus
from hrm_api.models.domain.role import AppRole, CapabilityFlags


class PrincipalInfo(BaseModel):
    """Authenticated principal."""

    id: UUID
    email: str | None = None


class SessionResponse(BaseModel):
    """Session state for clients.

    ``can_render_privileged`` is false while roles are unknown, including
    when the session is valid but ``roles_error`` is set.
    """

    status: AuthStatus
    principal: PrincipalInfo | None = None
    roles: list[AppRole] = []
    flags: CapabilityFlags = CapabilityFlags()
    roles_error: str | None = None
    can_render_privileged: bool = False
