"""Organization units router."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from hrm_api.dependencies import get_org_unit_service
from hrm_api.models.domain.principal import AuthContext
from hrm_api.models.dto.org_unit import (
    OrgUnitCreate,
    OrgUnitDetail,
    OrgUnitListResponse,
    OrgUnitUpdate,
)
from hrm_api.security.auth import require_action
from hrm_api.security.policy import Action
from hrm_api.security.rate_limit import SENSITIVE_OPERATION_LIMIT, limiter
from hrm_api.services.org_unit_service import OrgUnitService
from hrm_api.utils.validation import sanitize_search

router = APIRouter()


@router.get("", response_model=OrgUnitListResponse)
async def list_org_units(
    ctx: Annotated[AuthContext, Depends(require_action(Action.VIEW_ORG_STRUCTURE))],
    service: Annotated[OrgUnitService, Depends(get_org_unit_service)],
    search: str | None = Query(default=None, max_length=200),
    is_active: bool | None = None,
    page: int = Query(default=1, ge=1, le=10000),
    page_size: int = Query(default=50, ge=1, le=200),
) -> OrgUnitListResponse:
    """List organization units visible to the caller."""
    return await service.list_org_units(
        ctx,
        search=sanitize_search(search),
        is_active=is_active,
        page=page,
        page_size=page_size,
    )


@router.get("/{org_unit_id}", response_model=OrgUnitDetail)
async def get_org_unit(
    org_unit_id: UUID,
    ctx: Annotated[AuthContext, Depends(require_action(Action.VIEW_ORG_STRUCTURE))],
    service: Annotated[OrgUnitService, Depends(get_org_unit_service)],
) -> OrgUnitDetail:
    """Get organization unit detail."""
    return await service.get_org_unit(org_unit_id, ctx)


@router.post("", response_model=OrgUnitDetail, status_code=status.HTTP_201_CREATED)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def create_org_unit(
    request: Request,
    body: OrgUnitCreate,
    ctx: Annotated[AuthContext, Depends(require_action(Action.CREATE_ORG_STRUCTURE))],
    service: Annotated[OrgUnitService, Depends(get_org_unit_service)],
) -> OrgUnitDetail:
    """Create an organization unit. Requires admin or HR manager."""
    return await service.create_org_unit(body, ctx, request=request)


@router.patch("/{org_unit_id}", response_model=OrgUnitDetail)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_org_unit(
    request: Request,
    org_unit_id: UUID,
    body: OrgUnitUpdate,
    ctx: Annotated[AuthContext, Depends(require_action(Action.EDIT_ORG_STRUCTURE))],
    service: Annotated[OrgUnitService, Depends(get_org_unit_service)],
) -> OrgUnitDetail:
    """Update an organization unit. The code cannot be changed."""
    return await service.update_org_unit(org_unit_id, body, ctx, request=request)
