"""Organization unit service."""

import logging
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrm_api.exceptions import CodeAlreadyExistsError, OrgUnitNotFoundError, ValidationError
from hrm_api.models.domain.principal import AuthContext
from hrm_api.models.dto.org_unit import (
    OrgUnitCreate,
    OrgUnitDetail,
    OrgUnitListResponse,
    OrgUnitResponse,
    OrgUnitUpdate,
)
from hrm_api.models.orm.org_unit import OrgUnitORM
from hrm_api.repositories.org_unit_repository import OrgUnitRepository
from hrm_api.repositories.position_repository import PositionRepository
from hrm_api.security.policy import Action
from hrm_api.services.audit_service import AuditAction, AuditService, ResourceType
from hrm_api.utils.validation import normalize_code

logger = logging.getLogger(__name__)

SELF_PARENT_MESSAGE = "Organization unit cannot be its own parent"
CYCLE_MESSAGE = "Organization unit cannot be placed under one of its own sub-units"


class OrgUnitService:
    """Service for organization unit operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.org_unit_repo = OrgUnitRepository(session)
        self.position_repo = PositionRepository(session)
        self.audit_service = AuditService(session)

    async def _to_responses(self, org_units: list[OrgUnitORM]) -> list[OrgUnitResponse]:
        parents = await self.org_unit_repo.get_by_ids(
            {o.parent_id for o in org_units if o.parent_id}
        )
        return [
            OrgUnitResponse(
                id=o.id,
                code=o.code,
                name=o.name,
                description=o.description,
                parent_id=o.parent_id,
                parent_name=parents[o.parent_id].name if o.parent_id in parents else None,
                is_active=o.is_active,
                created_at=o.created_at,
                updated_at=o.updated_at,
            )
            for o in org_units
        ]

    async def _get_visible(self, org_unit_id: UUID) -> OrgUnitORM:
        org_unit = await self.org_unit_repo.get(org_unit_id)
        if org_unit is None:
            raise OrgUnitNotFoundError(str(org_unit_id))
        return org_unit

    async def list_org_units(
        self,
        ctx: AuthContext,
        search: str | None = None,
        is_active: bool | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> OrgUnitListResponse:
        """List org units visible to the actor."""
        ctx.policy.require(Action.VIEW_ORG_STRUCTURE)
        org_units, total = await self.org_unit_repo.get_all_with_filters(
            search=search,
            is_active=is_active,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return OrgUnitListResponse(
            items=await self._to_responses(org_units),
            total=total,
            page=page,
            page_size=page_size,
        )

    async def get_org_unit(self, org_unit_id: UUID, ctx: AuthContext) -> OrgUnitDetail:
        """Get org unit detail with child and position counts.

        Raises:
            OrgUnitNotFoundError: If missing or not visible to the actor
        """
        ctx.policy.require(Action.VIEW_ORG_STRUCTURE)
        org_unit = await self._get_visible(org_unit_id)
        return await self._to_detail(org_unit)

    async def _to_detail(self, org_unit: OrgUnitORM) -> OrgUnitDetail:
        response = (await self._to_responses([org_unit]))[0]
        children = await self.org_unit_repo.get_children(org_unit.id)
        _, position_count = await self.position_repo.get_all_with_filters(
            org_unit_id=org_unit.id, limit=1
        )
        return OrgUnitDetail(
            **response.model_dump(),
            created_by=org_unit.created_by,
            updated_by=org_unit.updated_by,
            child_count=len(children),
            position_count=position_count,
        )

    async def _validate_parent(self, org_unit_id: UUID | None, parent_id: UUID) -> None:
        """Reject a missing parent, a self-parent, or a cycle.

        Args:
            org_unit_id: Unit being edited (None when creating)
            parent_id: Proposed parent

        Raises:
            ValidationError: If the parent is not acceptable
        """
        if org_unit_id is not None and parent_id == org_unit_id:
            raise ValidationError(SELF_PARENT_MESSAGE, {"parent_id": SELF_PARENT_MESSAGE})

        if await self.org_unit_repo.get(parent_id) is None:
            raise ValidationError(
                "Parent organization unit not found",
                {"parent_id": "Parent organization unit not found."},
            )

        if org_unit_id is not None:
            ancestors = await self.org_unit_repo.get_ancestor_ids(parent_id)
            if org_unit_id in ancestors:
                raise ValidationError(CYCLE_MESSAGE, {"parent_id": CYCLE_MESSAGE})

    async def create_org_unit(
        self,
        data: OrgUnitCreate,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> OrgUnitDetail:
        """Create an org unit.

        Raises:
            PermissionDeniedError: If the actor may not create org structure
            ValidationError: If the code or parent is invalid
            CodeAlreadyExistsError: If the code is taken
        """
        ctx.policy.require(Action.CREATE_ORG_STRUCTURE)

        code = normalize_code(data.code)
        if code is None:
            raise ValidationError(
                "Invalid code",
                {"code": "Use letters, digits, dashes or underscores."},
            )
        if await self.org_unit_repo.get_by_code(code) is not None:
            raise CodeAlreadyExistsError(code)
        if data.parent_id is not None:
            await self._validate_parent(None, data.parent_id)

        org_unit = await self.org_unit_repo.create(
            code=code,
            name=data.name.strip(),
            description=data.description,
            parent_id=data.parent_id,
            is_active=data.is_active,
            created_by=ctx.principal_id,
            updated_by=ctx.principal_id,
        )

        await self.audit_service.log(
            action=AuditAction.ORG_UNIT_CREATE,
            resource_type=ResourceType.ORG_UNIT,
            resource_id=org_unit.id,
            actor_id=ctx.principal_id,
            changes={"code": code, "name": org_unit.name, "parent_id": data.parent_id},
            request=request,
        )
        logger.info(f"Org unit {org_unit.id} ({code}) created by {ctx.principal_id}")
        return await self._to_detail(org_unit)

    async def update_org_unit(
        self,
        org_unit_id: UUID,
        data: OrgUnitUpdate,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> OrgUnitDetail:
        """Update an org unit. The code is immutable.

        Manager grants are provisional; the database decides which units a
        manager may actually change.

        Raises:
            PermissionDeniedError: If the actor may not edit org structure
            OrgUnitNotFoundError: If missing or not visible to the actor
            ValidationError: If the new parent is invalid
            PolicyDeniedError: If the database refuses the update
        """
        ctx.policy.require(Action.EDIT_ORG_STRUCTURE)
        org_unit = await self._get_visible(org_unit_id)

        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            if changes["name"] is None:
                raise ValidationError("Invalid name", {"name": "Name is required."})
            changes["name"] = changes["name"].strip()
        if "is_active" in changes and changes["is_active"] is None:
            del changes["is_active"]
        if changes.get("parent_id") is not None:
            await self._validate_parent(org_unit.id, changes["parent_id"])

        changed = {k: v for k, v in changes.items() if getattr(org_unit, k) != v}
        if not changed:
            return await self._to_detail(org_unit)

        old = {k: getattr(org_unit, k) for k in changed}
        for key, value in changed.items():
            setattr(org_unit, key, value)
        org_unit.updated_by = ctx.principal_id
        org_unit = await self.org_unit_repo.save(org_unit)

        await self.audit_service.log(
            action=AuditAction.ORG_UNIT_UPDATE,
            resource_type=ResourceType.ORG_UNIT,
            resource_id=org_unit.id,
            actor_id=ctx.principal_id,
            changes={k: {"old": old[k], "new": v} for k, v in changed.items()},
            request=request,
        )
        return await self._to_detail(org_unit)
