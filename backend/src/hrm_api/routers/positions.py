"""Positions router."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from hrm_api.dependencies import get_position_service
from hrm_api.models.domain.principal import AuthContext
from hrm_api.models.dto.position import (
    PositionCreate,
    PositionDetail,
    PositionListResponse,
    PositionUpdate,
)
from hrm_api.security.auth import require_action
from hrm_api.security.policy import Action
from hrm_api.security.rate_limit import SENSITIVE_OPERATION_LIMIT, limiter
from hrm_api.services.position_service import PositionService
from hrm_api.utils.validation import sanitize_search

router = APIRouter()


@router.get("", response_model=PositionListResponse)
async def list_positions(
    ctx: Annotated[AuthContext, Depends(require_action(Action.VIEW_ORG_STRUCTURE))],
    service: Annotated[PositionService, Depends(get_position_service)],
    search: str | None = Query(default=None, max_length=200),
    org_unit_id: UUID | None = None,
    is_active: bool | None = None,
    page: int = Query(default=1, ge=1, le=10000),
    page_size: int = Query(default=50, ge=1, le=200),
) -> PositionListResponse:
    """List positions visible to the caller."""
    return await service.list_positions(
        ctx,
        search=sanitize_search(search),
        org_unit_id=org_unit_id,
        is_active=is_active,
        page=page,
        page_size=page_size,
    )


@router.get("/{position_id}", response_model=PositionDetail)
async def get_position(
    position_id: UUID,
    ctx: Annotated[AuthContext, Depends(require_action(Action.VIEW_ORG_STRUCTURE))],
    service: Annotated[PositionService, Depends(get_position_service)],
) -> PositionDetail:
    """Get position detail."""
    return await service.get_position(position_id, ctx)


@router.post("", response_model=PositionDetail, status_code=status.HTTP_201_CREATED)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def create_position(
    request: Request,
    body: PositionCreate,
    ctx: Annotated[AuthContext, Depends(require_action(Action.CREATE_ORG_STRUCTURE))],
    service: Annotated[PositionService, Depends(get_position_service)],
) -> PositionDetail:
    """Create a position. Requires admin or HR manager."""
    return await service.create_position(body, ctx, request=request)


@router.patch("/{position_id}", response_model=PositionDetail)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_position(
    request: Request,
    position_id: UUID,
    body: PositionUpdate,
    ctx: Annotated[AuthContext, Depends(require_action(Action.EDIT_ORG_STRUCTURE))],
    service: Annotated[PositionService, Depends(get_position_service)],
) -> PositionDetail:
    """Update a position. Code and org unit cannot be changed."""
    return await service.update_position(position_id, body, ctx, request=request)
