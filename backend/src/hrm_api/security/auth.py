"""Authentication and authorization dependencies.

Tokens are issued by the external identity provider; this service only
verifies them. Every guarded request resolves roles afresh, so the
authorization decision always reflects the principal of that request.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from hrm_api.config import get_settings
from hrm_api.database import get_db
from hrm_api.exceptions import AuthenticationError
from hrm_api.models.domain.principal import AuthContext, Principal
from hrm_api.security.policy import Action
from hrm_api.services.role_resolution_service import RoleResolutionService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and verify an identity provider JWT.

    Args:
        token: JWT token string

    Returns:
        Token payload

    Raises:
        AuthenticationError: If the token is invalid, expired or not for us
    """
    settings = get_settings()

    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token") from e


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a principal from verified token claims.

    Raises:
        AuthenticationError: If the subject is missing or not a UUID
    """
    try:
        principal_id = UUID(str(payload["sub"]))
    except (KeyError, ValueError) as e:
        raise AuthenticationError("Invalid token subject") from e

    email = payload.get("email")
    return Principal(id=principal_id, email=email if isinstance(email, str) else None)


async def get_optional_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
) -> Principal | None:
    """Get the principal of the request, or None without a bearer token.

    Raises:
        AuthenticationError: If a token is present but invalid
    """
    if credentials is None:
        return None
    return principal_from_claims(decode_token(credentials.credentials))


async def get_current_principal(
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
) -> Principal:
    """Get the authenticated principal.

    Raises:
        AuthenticationError: If the request is not authenticated
    """
    if principal is None:
        raise AuthenticationError()
    return principal


async def get_auth_context(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthContext:
    """Resolve the roles of the requesting principal.

    Raises:
        RolesUnavailableError: If roles cannot be resolved
    """
    return await RoleResolutionService(db).build_auth_context(principal)


def require_action(action: Action) -> Callable[..., Awaitable[AuthContext]]:
    """Create a dependency that requires a permitted action.

    Args:
        action: Action the endpoint performs

    Returns:
        Dependency returning the AuthContext when the action is permitted
    """

    async def check_action(
        ctx: Annotated[AuthContext, Depends(get_auth_context)],
    ) -> AuthContext:
        if not ctx.policy.can(action):
            logger.info(f"Principal {ctx.principal_id} denied action {action.value}")
        ctx.policy.require(action)
        return ctx

    return check_action
