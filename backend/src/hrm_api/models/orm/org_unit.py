"""Organization unit ORM model."""

from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hrm_api.models.orm.base import AuthorMixin, Base, TimestampMixin, UUIDMixin


class OrgUnitORM(Base, UUIDMixin, TimestampMixin, AuthorMixin):
    """Organization unit database model."""

    __tablename__ = "hrm_organization_units"

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("hrm_organization_units.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_org_units_parent_id", "parent_id"),
        CheckConstraint("parent_id IS NULL OR parent_id <> id", name="ck_org_units_not_own_parent"),
    )
