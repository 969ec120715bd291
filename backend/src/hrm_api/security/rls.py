"""Row-level security session binding.

PostgreSQL policies read the acting principal from the ``app.current_user_id``
setting. It is set transaction-locally, so it never leaks to the next
request that reuses the pooled connection.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

RLS_PRINCIPAL_SETTING = "app.current_user_id"


async def bind_principal(session: AsyncSession, principal_id: UUID) -> None:
    """Expose the acting principal to row-level security policies.

    Args:
        session: Request database session
        principal_id: Authenticated principal
    """
    if session.bind.dialect.name != "postgresql":
        return
    await session.execute(
        select(func.set_config(RLS_PRINCIPAL_SETTING, str(principal_id), True))
    )
