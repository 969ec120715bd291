"""Organization unit repository."""

from uuid import UUID

from sqlalchemy import func, or_, select

from hrm_api.models.orm.org_unit import OrgUnitORM
from hrm_api.repositories.base import BaseRepository
from hrm_api.utils.validation import escape_like_wildcards


class OrgUnitRepository(BaseRepository[OrgUnitORM]):
    """Repository for organization unit operations."""

    model = OrgUnitORM
    resource_type = "org_unit"

    async def get_by_code(self, code: str) -> OrgUnitORM | None:
        result = await self.session.execute(
            select(OrgUnitORM).where(OrgUnitORM.code == code)
        )
        return result.scalar_one_or_none()

    async def get_all_with_filters(
        self,
        search: str | None = None,
        is_active: bool | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> tuple[list[OrgUnitORM], int]:
        """Get org units with optional filters.

        Args:
            search: Search in code or name
            is_active: Filter by active flag
            offset: Pagination offset
            limit: Pagination limit

        Returns:
            Tuple of (org_units, total_count)
        """
        conditions = []
        if is_active is not None:
            conditions.append(OrgUnitORM.is_active.is_(is_active))
        if search:
            pattern = f"%{escape_like_wildcards(search)}%"
            conditions.append(
                or_(
                    OrgUnitORM.code.ilike(pattern, escape="\\"),
                    OrgUnitORM.name.ilike(pattern, escape="\\"),
                )
            )

        result = await self.session.execute(
            select(OrgUnitORM)
            .where(*conditions)
            .order_by(OrgUnitORM.name, OrgUnitORM.id)
            .offset(offset)
            .limit(limit)
        )
        count_result = await self.session.execute(
            select(func.count()).select_from(OrgUnitORM).where(*conditions)
        )
        return list(result.scalars().all()), count_result.scalar_one()

    async def get_active(self) -> list[OrgUnitORM]:
        result = await self.session.execute(
            select(OrgUnitORM).where(OrgUnitORM.is_active.is_(True)).order_by(OrgUnitORM.name)
        )
        return list(result.scalars().all())

    async def get_children(self, parent_id: UUID) -> list[OrgUnitORM]:
        result = await self.session.execute(
            select(OrgUnitORM).where(OrgUnitORM.parent_id == parent_id).order_by(OrgUnitORM.name)
        )
        return list(result.scalars().all())

    async def get_ancestor_ids(self, org_unit_id: UUID) -> list[UUID]:
        """Walk the parent chain upwards.

        Stops at the root, at an invisible parent, or when a unit repeats
        (a pre-existing cycle).

        Args:
            org_unit_id: Starting org unit

        Returns:
            Ancestor IDs from the direct parent upwards, excluding the start
        """
        ancestors: list[UUID] = []
        seen = {org_unit_id}
        current = org_unit_id
        while True:
            result = await self.session.execute(
                select(OrgUnitORM.parent_id).where(OrgUnitORM.id == current)
            )
            parent_id = result.scalar_one_or_none()
            if parent_id is None or parent_id in seen:
                return ancestors
            ancestors.append(parent_id)
            seen.add(parent_id)
            current = parent_id
