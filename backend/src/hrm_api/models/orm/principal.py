"""Principal ORM model (local mirror of the identity store)."""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from hrm_api.models.orm.base import Base, UUIDMixin


class PrincipalORM(Base, UUIDMixin):
    """Authenticated identity known to the application.

    Ids are assigned by the identity provider (token ``sub``), never here.
    """

    __tablename__ = "auth_users"

    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
