"""Position ORM model."""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hrm_api.models.orm.base import AuthorMixin, Base, TimestampMixin, UUIDMixin


class PositionORM(Base, UUIDMixin, TimestampMixin, AuthorMixin):
    """Position database model."""

    __tablename__ = "hrm_positions"

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    org_unit_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("hrm_organization_units.id", ondelete="RESTRICT"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_positions_org_unit_id", "org_unit_id"),
    )
