"""Base repository with common database operations."""

import logging
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from hrm_api.exceptions import PolicyDeniedError
from hrm_api.models.orm.base import Base

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Base)

# PostgreSQL SQLSTATE for insufficient_privilege, raised when a row violates
# a row-level security WITH CHECK clause.
INSUFFICIENT_PRIVILEGE = "42501"


def is_policy_violation(error: DBAPIError) -> bool:
    """Check if a database error is a row-level security rejection.

    Args:
        error: Wrapped DBAPI error

    Returns:
        True if the SQLSTATE is insufficient_privilege
    """
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == INSUFFICIENT_PRIVILEGE


class BaseRepository(Generic[T]):
    """Base repository with common CRUD operations."""

    model: type[T]
    resource_type: str = "resource"

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def get(self, id: UUID) -> T | None:
        """Get a record by ID.

        Rows hidden by row-level security are indistinguishable from
        missing rows.

        Args:
            id: Record UUID

        Returns:
            Record or None if not found
        """
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, ids: set[UUID] | list[UUID]) -> dict[UUID, T]:
        """Get several records by ID.

        Args:
            ids: Record UUIDs

        Returns:
            Dict mapping ID to record, missing IDs omitted
        """
        if not ids:
            return {}
        result = await self.session.execute(
            select(self.model).where(self.model.id.in_(list(ids)))
        )
        return {row.id: row for row in result.scalars().all()}

    async def flush(self, resource_id: UUID | None = None) -> None:
        """Flush pending changes, translating policy rejections.

        An UPDATE that matches no row (the row is invisible under the
        caller's row-level security policy) and a WITH CHECK violation
        both become PolicyDeniedError.

        Args:
            resource_id: ID of the record being written, for error details

        Raises:
            PolicyDeniedError: If the database policy refused the write
        """
        try:
            await self.session.flush()
        except StaleDataError as e:
            logger.warning(
                f"Write to {self.resource_type} {resource_id} matched no rows"
            )
            raise PolicyDeniedError(self.resource_type, resource_id) from e
        except DBAPIError as e:
            if is_policy_violation(e):
                logger.warning(
                    f"Write to {self.resource_type} {resource_id} rejected by row policy"
                )
                raise PolicyDeniedError(self.resource_type, resource_id) from e
            raise

    async def create(self, **kwargs: Any) -> T:
        """Create a new record.

        Args:
            **kwargs: Field values

        Returns:
            Created record
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.flush(kwargs.get("id"))
        await self.session.refresh(instance)
        return instance

    async def save(self, instance: T) -> T:
        """Write pending attribute changes of a loaded record.

        Args:
            instance: Modified record

        Returns:
            Refreshed record
        """
        await self.flush(instance.id)
        await self.session.refresh(instance)
        return instance
