"""Position service."""

import logging
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrm_api.exceptions import CodeAlreadyExistsError, PositionNotFoundError, ValidationError
from hrm_api.models.domain.principal import AuthContext
from hrm_api.models.dto.position import (
    PositionCreate,
    PositionDetail,
    PositionListResponse,
    PositionResponse,
    PositionUpdate,
)
from hrm_api.models.orm.position import PositionORM
from hrm_api.repositories.org_unit_repository import OrgUnitRepository
from hrm_api.repositories.position_repository import PositionRepository
from hrm_api.security.policy import Action
from hrm_api.services.audit_service import AuditAction, AuditService, ResourceType
from hrm_api.utils.validation import normalize_code

logger = logging.getLogger(__name__)


class PositionService:
    """Service for position operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.position_repo = PositionRepository(session)
        self.org_unit_repo = OrgUnitRepository(session)
        self.audit_service = AuditService(session)

    async def _to_responses(self, positions: list[PositionORM]) -> list[PositionResponse]:
        org_units = await self.org_unit_repo.get_by_ids(
            {p.org_unit_id for p in positions if p.org_unit_id}
        )
        return [
            PositionResponse(
                id=p.id,
                code=p.code,
                title=p.title,
                description=p.description,
                org_unit_id=p.org_unit_id,
                org_unit_name=org_units[p.org_unit_id].name if p.org_unit_id in org_units else None,
                is_active=p.is_active,
                created_at=p.created_at,
                updated_at=p.updated_at,
            )
            for p in positions
        ]

    async def _to_detail(self, position: PositionORM) -> PositionDetail:
        response = (await self._to_responses([position]))[0]
        return PositionDetail(
            **response.model_dump(),
            created_by=position.created_by,
            updated_by=position.updated_by,
        )

    async def list_positions(
        self,
        ctx: AuthContext,
        search: str | None = None,
        org_unit_id: UUID | None = None,
        is_active: bool | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> PositionListResponse:
        """List positions visible to the actor."""
        ctx.policy.require(Action.VIEW_ORG_STRUCTURE)
        positions, total = await self.position_repo.get_all_with_filters(
            search=search,
            org_unit_id=org_unit_id,
            is_active=is_active,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return PositionListResponse(
            items=await self._to_responses(positions),
            total=total,
            page=page,
            page_size=page_size,
        )

    async def get_position(self, position_id: UUID, ctx: AuthContext) -> PositionDetail:
        """Get position detail.

        Raises:
            PositionNotFoundError: If missing or not visible to the actor
        """
        ctx.policy.require(Action.VIEW_ORG_STRUCTURE)
        position = await self.position_repo.get(position_id)
        if position is None:
            raise PositionNotFoundError(str(position_id))
        return await self._to_detail(position)

    async def create_position(
        self,
        data: PositionCreate,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> PositionDetail:
        """Create a position.

        Raises:
            PermissionDeniedError: If the actor may not create org structure
            ValidationError: If the code or org unit is invalid
            CodeAlreadyExistsError: If the code is taken
        """
        ctx.policy.require(Action.CREATE_ORG_STRUCTURE)

        code = normalize_code(data.code)
        if code is None:
            raise ValidationError(
                "Invalid code",
                {"code": "Use letters, digits, dashes or underscores."},
            )
        if await self.position_repo.get_by_code(code) is not None:
            raise CodeAlreadyExistsError(code)
        if data.org_unit_id is not None and await self.org_unit_repo.get(data.org_unit_id) is None:
            raise ValidationError(
                "Organization unit not found",
                {"org_unit_id": "Organization unit not found."},
            )

        position = await self.position_repo.create(
            code=code,
            title=data.title.strip(),
            description=data.description,
            org_unit_id=data.org_unit_id,
            is_active=data.is_active,
            created_by=ctx.principal_id,
            updated_by=ctx.principal_id,
        )

        await self.audit_service.log(
            action=AuditAction.POSITION_CREATE,
            resource_type=ResourceType.POSITION,
            resource_id=position.id,
            actor_id=ctx.principal_id,
            changes={"code": code, "title": position.title, "org_unit_id": data.org_unit_id},
            request=request,
        )
        logger.info(f"Position {position.id} ({code}) created by {ctx.principal_id}")
        return await self._to_detail(position)

    async def update_position(
        self,
        position_id: UUID,
        data: PositionUpdate,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> PositionDetail:
        """Update a position. Code and org unit are immutable.

        Raises:
            PermissionDeniedError: If the actor may not edit org structure
            PositionNotFoundError: If missing or not visible to the actor
            PolicyDeniedError: If the database refuses the update
        """
        ctx.policy.require(Action.EDIT_ORG_STRUCTURE)
        position = await self.position_repo.get(position_id)
        if position is None:
            raise PositionNotFoundError(str(position_id))

        changes = data.model_dump(exclude_unset=True)
        if "title" in changes:
            if changes["title"] is None:
                raise ValidationError("Invalid title", {"title": "Title is required."})
            changes["title"] = changes["title"].strip()
        if "is_active" in changes and changes["is_active"] is None:
            del changes["is_active"]

        changed = {k: v for k, v in changes.items() if getattr(position, k) != v}
        if not changed:
            return await self._to_detail(position)

        old = {k: getattr(position, k) for k in changed}
        for key, value in changed.items():
            setattr(position, key, value)
        position.updated_by = ctx.principal_id
        position = await self.position_repo.save(position)

        await self.audit_service.log(
            action=AuditAction.POSITION_UPDATE,
            resource_type=ResourceType.POSITION,
            resource_id=position.id,
            actor_id=ctx.principal_id,
            changes={k: {"old": old[k], "new": v} for k, v in changed.items()},
            request=request,
        )
        return await self._to_detail(position)
