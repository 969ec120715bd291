"""Users and roles router."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from hrm_api.dependencies import get_role_management_service, get_user_directory_service
from hrm_api.models.domain.principal import AuthContext
from hrm_api.models.domain.role import AppRole
from hrm_api.models.dto.user import (
    EmployeeLinkRequest,
    RoleChangeRequest,
    LinkCandidateOption,
    UserAccessChangeSummary,
    UserAccessUpdate,
    UserListItem,
    UserListResponse,
)
from hrm_api.security.auth import require_action
from hrm_api.security.policy import Action
from hrm_api.security.rate_limit import SENSITIVE_OPERATION_LIMIT, limiter
from hrm_api.services.role_management_service import RoleManagementService
from hrm_api.services.user_directory_service import UserDirectoryService

router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    ctx: Annotated[AuthContext, Depends(require_action(Action.VIEW_USERS))],
    service: Annotated[UserDirectoryService, Depends(get_user_directory_service)],
) -> UserListResponse:
    """List users with roles and linked employees. Requires admin or HR manager."""
    return await service.list_users(ctx)


@router.get("/link-candidates", response_model=list[LinkCandidateOption])
async def list_link_candidates(
    ctx: Annotated[AuthContext, Depends(require_action(Action.MANAGE_EMPLOYEE_LINKS))],
    service: Annotated[UserDirectoryService, Depends(get_user_directory_service)],
) -> list[LinkCandidateOption]:
    """List employees a user can be linked to. Admin only."""
    return await service.list_link_candidates(ctx)


@router.get("/{user_id}", response_model=UserListItem)
async def get_user(
    user_id: UUID,
    ctx: Annotated[AuthContext, Depends(require_action(Action.VIEW_USERS))],
    service: Annotated[UserDirectoryService, Depends(get_user_directory_service)],
) -> UserListItem:
    """Get a user with roles, linked employee, org unit and position."""
    return await service.get_user(user_id, ctx)


@router.post("/{user_id}/roles", response_model=UserListItem)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def assign_role(
    request: Request,
    user_id: UUID,
    body: RoleChangeRequest,
    ctx: Annotated[AuthContext, Depends(require_action(Action.MODIFY_ROLES))],
    service: Annotated[RoleManagementService, Depends(get_role_management_service)],
    directory: Annotated[UserDirectoryService, Depends(get_user_directory_service)],
) -> UserListItem:
    """Grant a role. Granting a held role changes nothing. Admin only."""
    await service.assign_role(user_id, body.role, ctx, request=request)
    return await directory.get_user(user_id, ctx)


@router.delete("/{user_id}/roles/{role}", response_model=UserListItem)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def remove_role(
    request: Request,
    user_id: UUID,
    role: AppRole,
    ctx: Annotated[AuthContext, Depends(require_action(Action.MODIFY_ROLES))],
    service: Annotated[RoleManagementService, Depends(get_role_management_service)],
    directory: Annotated[UserDirectoryService, Depends(get_user_directory_service)],
) -> UserListItem:
    """Revoke a role. Revoking a role that is not held changes nothing. Admin only."""
    await service.remove_role(user_id, role, ctx, request=request)
    return await directory.get_user(user_id, ctx)


@router.put("/{user_id}/employee-link", response_model=UserListItem)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def set_employee_link(
    request: Request,
    user_id: UUID,
    body: EmployeeLinkRequest,
    ctx: Annotated[AuthContext, Depends(require_action(Action.MANAGE_EMPLOYEE_LINKS))],
    service: Annotated[RoleManagementService, Depends(get_role_management_service)],
    directory: Annotated[UserDirectoryService, Depends(get_user_directory_service)],
) -> UserListItem:
    """Link a user to an employee, or unlink with a null employee. Admin only."""
    await service.set_employee_link(user_id, body.employee_id, ctx, request=request)
    return await directory.get_user(user_id, ctx)


@router.put("/{user_id}/access", response_model=UserAccessChangeSummary)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def save_user_access(
    request: Request,
    user_id: UUID,
    body: UserAccessUpdate,
    ctx: Annotated[AuthContext, Depends(require_action(Action.MODIFY_ROLES))],
    service: Annotated[RoleManagementService, Depends(get_role_management_service)],
) -> UserAccessChangeSummary:
    """Set a user's roles and employee link in one change. Admin only.

    Either every change is applied or none is.
    """
    return await service.save_user_access(
        user_id, set(body.roles), body.employee_id, ctx, request=request
    )
