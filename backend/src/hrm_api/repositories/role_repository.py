"""User role repository."""

from collections import defaultdict
from uuid import UUID

from sqlalchemy import delete, func, select

from hrm_api.exceptions import PolicyDeniedError
from hrm_api.models.orm.user_role import UserRoleORM
from hrm_api.repositories.base import BaseRepository


class RoleRepository(BaseRepository[UserRoleORM]):
    """Repository for user role grants."""

    model = UserRoleORM
    resource_type = "role"

    async def get_roles_for_user(self, user_id: UUID) -> list[str]:
        """Get role strings held by a principal.

        Args:
            user_id: Principal UUID

        Returns:
            Role strings, possibly empty
        """
        result = await self.session.execute(
            select(UserRoleORM.role)
            .where(UserRoleORM.user_id == user_id)
            .order_by(UserRoleORM.role)
        )
        return list(result.scalars().all())

    async def get_roles_for_users(self, user_ids: list[UUID]) -> dict[UUID, list[str]]:
        """Get role strings for many principals in one query."""
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(UserRoleORM.user_id, UserRoleORM.role)
            .where(UserRoleORM.user_id.in_(user_ids))
            .order_by(UserRoleORM.role)
        )
        roles: dict[UUID, list[str]] = defaultdict(list)
        for user_id, role in result.all():
            roles[user_id].append(role)
        return dict(roles)

    async def count_for_user(self, user_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(UserRoleORM).where(UserRoleORM.user_id == user_id)
        )
        return result.scalar_one()

    async def has_role(self, user_id: UUID, role: str) -> bool:
        result = await self.session.execute(
            select(UserRoleORM.id).where(
                UserRoleORM.user_id == user_id,
                UserRoleORM.role == role,
            )
        )
        return result.scalar_one_or_none() is not None

    async def add_role(self, user_id: UUID, role: str, created_by: UUID | None = None) -> bool:
        """Grant a role unless already held.

        Args:
            user_id: Principal UUID
            role: Role string
            created_by: Principal performing the grant

        Returns:
            True if a grant was written, False if it already existed
        """
        if await self.has_role(user_id, role):
            return False
        await self.create(user_id=user_id, role=role, created_by=created_by)
        return True

    async def remove_role(self, user_id: UUID, role: str) -> bool:
        """Revoke a role if held.

        Args:
            user_id: Principal UUID
            role: Role string

        Returns:
            True if a grant was removed, False if none existed

        Raises:
            PolicyDeniedError: If the grant is visible but the delete matched nothing
        """
        if not await self.has_role(user_id, role):
            return False
        result = await self.session.execute(
            delete(UserRoleORM).where(
                UserRoleORM.user_id == user_id,
                UserRoleORM.role == role,
            )
        )
        if result.rowcount == 0:
            raise PolicyDeniedError(self.resource_type, str(user_id))
        return True
