"""Employee ORM model."""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hrm_api.models.orm.base import AuthorMixin, Base, TimestampMixin, UUIDMixin


class EmployeeORM(Base, UUIDMixin, TimestampMixin, AuthorMixin):
    """Employee database model."""

    __tablename__ = "hrm_employees"

    employee_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Organizational placement
    org_unit_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("hrm_organization_units.id", ondelete="SET NULL"),
        nullable=True,
    )
    position_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("hrm_positions.id", ondelete="SET NULL"),
        nullable=True,
    )
    manager_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("hrm_employees.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Linked principal (1:1)
    user_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("auth_users.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
    )

    # Lifecycle
    employment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    termination_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Termination audit (kept after reactivation)
    termination_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    terminated_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    terminated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Reactivation audit
    reactivation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reactivated_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    reactivated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_employees_org_unit_id", "org_unit_id"),
        Index("idx_employees_manager_id", "manager_id"),
        Index("idx_employees_status", "employment_status"),
        CheckConstraint(
            "employment_status IN ('active', 'inactive', 'on_leave', 'terminated')",
            name="ck_employees_status",
        ),
        CheckConstraint(
            "NOT (employment_status = 'active' AND termination_date IS NOT NULL)",
            name="ck_employees_active_without_termination_date",
        ),
        CheckConstraint(
            "employment_status <> 'terminated' OR is_active = false",
            name="ck_employees_terminated_inactive",
        ),
        CheckConstraint("manager_id IS NULL OR manager_id <> id", name="ck_employees_not_own_manager"),
    )
