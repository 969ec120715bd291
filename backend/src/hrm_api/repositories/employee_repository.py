"""Employee repository."""

import re
from uuid import UUID

from sqlalchemy import func, or_, select

from hrm_api.models.orm.employee import EmployeeORM
from hrm_api.repositories.base import BaseRepository
from hrm_api.utils.validation import escape_like_wildcards

# Whitelist of valid sort columns to prevent column injection
VALID_SORT_COLUMNS = {
    "employee_code",
    "first_name",
    "last_name",
    "email",
    "employment_status",
    "hire_date",
    "termination_date",
}

EMPLOYEE_CODE_DIGITS = 4


class EmployeeRepository(BaseRepository[EmployeeORM]):
    """Repository for employee operations."""

    model = EmployeeORM
    resource_type = "employee"

    async def get_by_user_id(self, user_id: UUID) -> EmployeeORM | None:
        """Get the employee linked to a principal.

        Args:
            user_id: Principal UUID

        Returns:
            EmployeeORM or None if the principal is unlinked
        """
        result = await self.session.execute(
            select(EmployeeORM).where(EmployeeORM.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_user_ids(self, user_ids: list[UUID]) -> dict[UUID, EmployeeORM]:
        """Get linked employees for many principals, keyed by principal."""
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(EmployeeORM).where(EmployeeORM.user_id.in_(user_ids))
        )
        return {emp.user_id: emp for emp in result.scalars().all()}

    async def get_all_with_filters(
        self,
        search: str | None = None,
        status: str | None = None,
        org_unit_id: UUID | None = None,
        owner_user_id: UUID | None = None,
        sort_by: str = "employee_code",
        sort_dir: str = "asc",
        offset: int = 0,
        limit: int = 100,
    ) -> tuple[list[EmployeeORM], int]:
        """Get employees with optional filters.

        Args:
            search: Search in name, email or employee code
            status: Filter by employment status
            org_unit_id: Filter by org unit
            owner_user_id: Restrict to the employee linked to this principal
            sort_by: Column to sort by
            sort_dir: Sort direction (asc or desc)
            offset: Pagination offset
            limit: Pagination limit

        Returns:
            Tuple of (employees, total_count)
        """
        conditions = []

        if status:
            conditions.append(EmployeeORM.employment_status == status)

        if org_unit_id:
            conditions.append(EmployeeORM.org_unit_id == org_unit_id)

        if owner_user_id:
            conditions.append(EmployeeORM.user_id == owner_user_id)

        if search:
            pattern = f"%{escape_like_wildcards(search)}%"
            full_name = EmployeeORM.first_name + " " + EmployeeORM.last_name
            conditions.append(
                or_(
                    full_name.ilike(pattern, escape="\\"),
                    EmployeeORM.email.ilike(pattern, escape="\\"),
                    EmployeeORM.employee_code.ilike(pattern, escape="\\"),
                )
            )

        query = select(EmployeeORM).where(*conditions)
        count_query = select(func.count()).select_from(EmployeeORM).where(*conditions)

        if sort_by not in VALID_SORT_COLUMNS:
            sort_by = "employee_code"
        sort_column = getattr(EmployeeORM, sort_by)
        if sort_dir == "desc":
            query = query.order_by(sort_column.desc().nulls_last(), EmployeeORM.id)
        else:
            query = query.order_by(sort_column.asc().nulls_last(), EmployeeORM.id)

        query = query.offset(offset).limit(limit)

        result = await self.session.execute(query)
        employees = list(result.scalars().all())

        count_result = await self.session.execute(count_query)
        total = count_result.scalar_one()

        return employees, total

    async def get_active(self, exclude_id: UUID | None = None) -> list[EmployeeORM]:
        """Get active employees ordered by last name.

        Args:
            exclude_id: Employee to leave out (e.g. the one being edited)

        Returns:
            List of active employees
        """
        query = select(EmployeeORM).where(EmployeeORM.is_active.is_(True))
        if exclude_id:
            query = query.where(EmployeeORM.id != exclude_id)
        result = await self.session.execute(
            query.order_by(EmployeeORM.last_name, EmployeeORM.first_name)
        )
        return list(result.scalars().all())

    async def next_employee_code(self, prefix: str) -> str:
        """Generate the next free employee code for a prefix.

        Codes look like ``<PREFIX>-0001``. Existing codes with a non-numeric
        suffix are ignored.

        Args:
            prefix: Org unit code

        Returns:
            Next employee code
        """
        pattern = f"{escape_like_wildcards(prefix)}-%"
        result = await self.session.execute(
            select(EmployeeORM.employee_code).where(
                EmployeeORM.employee_code.like(pattern, escape="\\")
            )
        )
        suffix_re = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
        highest = 0
        for code in result.scalars().all():
            match = suffix_re.match(code)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{prefix}-{highest + 1:0{EMPLOYEE_CODE_DIGITS}d}"

    async def clear_user_link(self, user_id: UUID) -> EmployeeORM | None:
        """Unlink whichever employee is currently linked to a principal.

        Args:
            user_id: Principal UUID

        Returns:
            The previously linked employee, or None
        """
        employee = await self.get_by_user_id(user_id)
        if employee is None:
            return None
        employee.user_id = None
        await self.flush(employee.id)
        return employee

    async def set_user_link(self, employee: EmployeeORM, user_id: UUID, updated_by: UUID | None) -> None:
        """Link an employee to a principal."""
        employee.user_id = user_id
        employee.updated_by = updated_by
        await self.flush(employee.id)
