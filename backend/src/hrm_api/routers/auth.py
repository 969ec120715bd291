"""Authentication router."""

from typing import Annotated

from fastapi import APIRouter, Depends

from hrm_api.dependencies import get_role_resolution_service
from hrm_api.models.domain.principal import AuthContext, AuthStatus, Principal
from hrm_api.models.dto.auth import PrincipalInfo, SessionResponse
from hrm_api.security.auth import get_auth_context, get_optional_principal
from hrm_api.services.role_resolution_service import (
    RoleResolutionService,
    derive_capability_flags,
)

router = APIRouter()


@router.get("/session", response_model=SessionResponse)
async def get_session(
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    service: Annotated[RoleResolutionService, Depends(get_role_resolution_service)],
) -> SessionResponse:
    """Get the authentication state of the caller.

    A valid session whose roles cannot be loaded is reported with
    ``roles_error`` set rather than as an error response.
    """
    state = await service.session_state(principal)
    return SessionResponse(
        status=state.status,
        principal=PrincipalInfo(id=state.principal.id, email=state.principal.email)
        if state.principal
        else None,
        roles=state.roles,
        flags=derive_capability_flags(frozenset(state.roles)),
        roles_error=state.roles_error,
        can_render_privileged=state.can_render_privileged,
    )


@router.get("/me", response_model=SessionResponse)
async def get_me(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
) -> SessionResponse:
    """Get the authenticated principal with its roles.

    Fails with 503 when roles cannot be resolved.
    """
    return SessionResponse(
        status=AuthStatus.AUTHENTICATED,
        principal=PrincipalInfo(id=ctx.principal.id, email=ctx.principal.email),
        roles=sorted(ctx.roles),
        flags=derive_capability_flags(ctx.roles),
        can_render_privileged=True,
    )
