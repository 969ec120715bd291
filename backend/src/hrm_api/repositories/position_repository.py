"""Position repository."""

from uuid import UUID

from sqlalchemy import func, or_, select

from hrm_api.models.orm.position import PositionORM
from hrm_api.repositories.base import BaseRepository
from hrm_api.utils.validation import escape_like_wildcards


class PositionRepository(BaseRepository[PositionORM]):
    """Repository for position operations."""

    model = PositionORM
    resource_type = "position"

    async def get_by_code(self, code: str) -> PositionORM | None:
        result = await self.session.execute(
            select(PositionORM).where(PositionORM.code == code)
        )
        return result.scalar_one_or_none()

    async def get_all_with_filters(
        self,
        search: str | None = None,
        org_unit_id: UUID | None = None,
        is_active: bool | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> tuple[list[PositionORM], int]:
        """Get positions with optional filters.

        Args:
            search: Search in code or title
            org_unit_id: Filter by owning org unit
            is_active: Filter by active flag
            offset: Pagination offset
            limit: Pagination limit

        Returns:
            Tuple of (positions, total_count)
        """
        conditions = []
        if org_unit_id:
            conditions.append(PositionORM.org_unit_id == org_unit_id)
        if is_active is not None:
            conditions.append(PositionORM.is_active.is_(is_active))
        if search:
            pattern = f"%{escape_like_wildcards(search)}%"
            conditions.append(
                or_(
                    PositionORM.code.ilike(pattern, escape="\\"),
                    PositionORM.title.ilike(pattern, escape="\\"),
                )
            )

        result = await self.session.execute(
            select(PositionORM)
            .where(*conditions)
            .order_by(PositionORM.title, PositionORM.id)
            .offset(offset)
            .limit(limit)
        )
        count_result = await self.session.execute(
            select(func.count()).select_from(PositionORM).where(*conditions)
        )
        return list(result.scalars().all()), count_result.scalar_one()

    async def get_active(self, org_unit_id: UUID | None = None) -> list[PositionORM]:
        """Get active positions, optionally for one org unit."""
        query = select(PositionORM).where(PositionORM.is_active.is_(True))
        if org_unit_id:
            query = query.where(PositionORM.org_unit_id == org_unit_id)
        result = await self.session.execute(query.order_by(PositionORM.title))
        return list(result.scalars().all())
