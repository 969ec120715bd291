"""Principal repository."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import select

from hrm_api.models.orm.principal import PrincipalORM
from hrm_api.repositories.base import BaseRepository

# Granularity of last_seen_at; requests inside this window do not write
LAST_SEEN_RESOLUTION = timedelta(minutes=15)


class PrincipalRepository(BaseRepository[PrincipalORM]):
    """Repository for the local principal mirror."""

    model = PrincipalORM
    resource_type = "user"

    async def ensure(self, principal_id: UUID, email: str | None) -> PrincipalORM:
        """Register a principal on first sight and keep its record current.

        A known principal is only written when its e-mail changed or its
        ``last_seen_at`` is older than LAST_SEEN_RESOLUTION.

        Args:
            principal_id: Identity provider subject
            email: E-mail claim from the token

        Returns:
            Principal record
        """
        now = datetime.now(timezone.utc)
        principal = await self.get(principal_id)
        if principal is None:
            return await self.create(id=principal_id, email=email, last_seen_at=now)

        email_changed = bool(email) and principal.email != email
        last_seen = principal.last_seen_at
        if last_seen is not None and last_seen.tzinfo is None:
            last_seen = last_seen.replace(tzinfo=timezone.utc)
        stale = last_seen is None or now - last_seen >= LAST_SEEN_RESOLUTION

        if not (email_changed or stale):
            return principal

        if email_changed:
            principal.email = email
        if stale:
            principal.last_seen_at = now
        await self.flush(principal_id)
        return principal

    async def list_all(self) -> list[PrincipalORM]:
        """Get every known principal ordered by e-mail."""
        result = await self.session.execute(
            select(PrincipalORM).order_by(PrincipalORM.email, PrincipalORM.id)
        )
        return list(result.scalars().all())
