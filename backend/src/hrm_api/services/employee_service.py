"""Employee service for directory, detail and edit operations."""

import logging
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrm_api.exceptions import EmployeeNotFoundError, ValidationError
from hrm_api.models.domain.employee import EmploymentStatus
from hrm_api.models.domain.principal import AuthContext
from hrm_api.models.dto.employee import (
    EmployeeCreate,
    EmployeeDetail,
    EmployeeFormOptions,
    EmployeeListItem,
    EmployeeListResponse,
    EmployeeUpdate,
    FormOption,
)
from hrm_api.models.orm.employee import EmployeeORM
from hrm_api.repositories.employee_repository import EmployeeRepository
from hrm_api.repositories.org_unit_repository import OrgUnitRepository
from hrm_api.repositories.position_repository import PositionRepository
from hrm_api.security.policy import Action
from hrm_api.services.audit_service import AuditAction, AuditService, ResourceType
from hrm_api.services.employee_lifecycle_service import apply_employee_patch, business_today

logger = logging.getLogger(__name__)

# Fields an edit may touch; everything else is system managed
EDITABLE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "org_unit_id",
    "position_id",
    "manager_id",
    "employment_status",
    "hire_date",
    "termination_date",
    "is_active",
)


def full_name(employee: EmployeeORM) -> str:
    return f"{employee.first_name} {employee.last_name}".strip()


class EmployeeService:
    """Service for employee read models and edits."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.employee_repo = EmployeeRepository(session)
        self.org_unit_repo = OrgUnitRepository(session)
        self.position_repo = PositionRepository(session)
        self.audit_service = AuditService(session)

    async def _build_items(
        self,
        employees: list[EmployeeORM],
        item_type: type[EmployeeListItem] = EmployeeListItem,
    ) -> list[Any]:
        """Resolve org unit, position and manager names in batch."""
        org_units = await self.org_unit_repo.get_by_ids(
            {e.org_unit_id for e in employees if e.org_unit_id}
        )
        positions = await self.position_repo.get_by_ids(
            {e.position_id for e in employees if e.position_id}
        )
        managers = await self.employee_repo.get_by_ids(
            {e.manager_id for e in employees if e.manager_id}
        )

        items = []
        for employee in employees:
            org_unit = org_units.get(employee.org_unit_id) if employee.org_unit_id else None
            position = positions.get(employee.position_id) if employee.position_id else None
            manager = managers.get(employee.manager_id) if employee.manager_id else None
            items.append(
                item_type.model_validate(
                    {
                        **{c.key: getattr(employee, c.key) for c in EmployeeORM.__table__.columns},
                        "full_name": full_name(employee),
                        "org_unit_name": org_unit.name if org_unit else None,
                        "position_title": position.title if position else None,
                        # Invisible managers show as unknown rather than leaking the name
                        "manager_name": full_name(manager) if manager else None,
                    }
                )
            )
        return items

    async def build_detail(self, employee: EmployeeORM) -> EmployeeDetail:
        """Build the detail view of a loaded employee."""
        items = await self._build_items([employee], EmployeeDetail)
        return items[0]

    async def list_employees(
        self,
        ctx: AuthContext,
        search: str | None = None,
        status: str | None = None,
        org_unit_id: UUID | None = None,
        sort_by: str = "employee_code",
        sort_dir: str = "asc",
        page: int = 1,
        page_size: int = 50,
    ) -> EmployeeListResponse:
        """List employees visible to the actor.

        Admins, HR managers and managers get every row the database lets
        them read. Plain employees only get their own record.

        Args:
            ctx: Auth context of the actor
            search: Search in name, email or employee code
            status: Filter by employment status
            org_unit_id: Filter by org unit
            sort_by: Sort column
            sort_dir: Sort direction
            page: Page number (1-based)
            page_size: Items per page

        Returns:
            Paginated employee list
        """
        policy = ctx.policy
        policy.require(Action.VIEW_EMPLOYEES)

        owner_user_id = None if policy.can_view_hrm_data() else ctx.principal_id
        offset = (page - 1) * page_size
        employees, total = await self.employee_repo.get_all_with_filters(
            search=search,
            status=status,
            org_unit_id=org_unit_id,
            owner_user_id=owner_user_id,
            sort_by=sort_by,
            sort_dir=sort_dir,
            offset=offset,
            limit=page_size,
        )
        employees = [e for e in employees if policy.can_view_employee(e.user_id)]

        return EmployeeListResponse(
            items=await self._build_items(employees),
            total=total,
            page=page,
            page_size=page_size,
        )

    async def get_employee(self, employee_id: UUID, ctx: AuthContext) -> EmployeeDetail:
        """Get employee detail.

        Raises:
            EmployeeNotFoundError: If missing or not visible to the actor
        """
        policy = ctx.policy
        policy.require(Action.VIEW_EMPLOYEES)

        employee = await self.employee_repo.get(employee_id)
        if employee is None or not policy.can_view_employee(employee.user_id):
            raise EmployeeNotFoundError(str(employee_id))
        return await self.build_detail(employee)

    async def _validate_references(self, values: dict[str, Any]) -> None:
        """Check that referenced org unit, position and manager exist."""
        fields: dict[str, str] = {}
        if values.get("org_unit_id") and await self.org_unit_repo.get(values["org_unit_id"]) is None:
            fields["org_unit_id"] = "Organization unit not found."
        if values.get("position_id") and await self.position_repo.get(values["position_id"]) is None:
            fields["position_id"] = "Position not found."
        if values.get("manager_id") and await self.employee_repo.get(values["manager_id"]) is None:
            fields["manager_id"] = "Manager not found."
        if fields:
            raise ValidationError("Employee data is invalid", fields)

    async def create_employee(
        self,
        data: EmployeeCreate,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> EmployeeDetail:
        """Create an employee.

        The employee code is generated from the org unit code and the hire
        date defaults to today.

        Args:
            data: Employee data
            ctx: Auth context of the actor
            request: HTTP request for audit metadata

        Returns:
            Created employee detail

        Raises:
            PermissionDeniedError: If the actor may not create employees
            ValidationError: If the data violates an employee invariant
        """
        ctx.policy.require(Action.CREATE_EMPLOYEE)

        values = data.model_dump()
        if values["hire_date"] is None:
            values["hire_date"] = business_today()
        values = apply_employee_patch(None, {}, values)
        await self._validate_references(values)

        org_unit = await self.org_unit_repo.get(values["org_unit_id"])
        employee_code = await self.employee_repo.next_employee_code(org_unit.code)

        employee = await self.employee_repo.create(
            employee_code=employee_code,
            created_by=ctx.principal_id,
            updated_by=ctx.principal_id,
            **values,
        )

        await self.audit_service.log(
            action=AuditAction.EMPLOYEE_CREATE,
            resource_type=ResourceType.EMPLOYEE,
            resource_id=employee.id,
            actor_id=ctx.principal_id,
            changes={"employee_code": employee_code, **values},
            request=request,
        )
        logger.info(f"Employee {employee.id} ({employee_code}) created by {ctx.principal_id}")
        return await self.build_detail(employee)

    async def update_employee(
        self,
        employee_id: UUID,
        data: EmployeeUpdate,
        ctx: AuthContext,
        request: Request | None = None,
    ) -> EmployeeDetail:
        """Apply a partial update to an employee.

        Args:
            employee_id: Employee UUID
            data: Fields to change
            ctx: Auth context of the actor
            request: HTTP request for audit metadata

        Returns:
            Updated employee detail

        Raises:
            PermissionDeniedError: If the actor may not edit employees
            EmployeeNotFoundError: If missing or not visible to the actor
            ValidationError: If the result violates an employee invariant
            PolicyDeniedError: If the database refuses the update
        """
        policy = ctx.policy
        policy.require(Action.EDIT_EMPLOYEE)

        employee = await self.employee_repo.get(employee_id)
        if employee is None or not policy.can_view_employee(employee.user_id):
            raise EmployeeNotFoundError(str(employee_id))

        current = {key: getattr(employee, key) for key in EDITABLE_FIELDS}
        changes = apply_employee_patch(employee.id, current, data.model_dump(exclude_unset=True))
        await self._validate_references(changes)

        changed = {
            key: value for key, value in changes.items() if current.get(key) != value
        }
        if not changed:
            return await self.build_detail(employee)

        for key, value in changed.items():
            setattr(employee, key, value)
        employee.updated_by = ctx.principal_id
        employee = await self.employee_repo.save(employee)

        await self.audit_service.log(
            action=AuditAction.EMPLOYEE_UPDATE,
            resource_type=ResourceType.EMPLOYEE,
            resource_id=employee.id,
            actor_id=ctx.principal_id,
            changes={
                key: {"old": current.get(key), "new": value} for key, value in changed.items()
            },
            request=request,
        )
        return await self.build_detail(employee)

    async def get_form_options(
        self,
        ctx: AuthContext,
        org_unit_id: UUID | None = None,
        exclude_employee_id: UUID | None = None,
    ) -> EmployeeFormOptions:
        """Get option lists for the employee form.

        Args:
            ctx: Auth context of the actor
            org_unit_id: Only list positions of this org unit
            exclude_employee_id: Employee being edited, left out of managers

        Returns:
            Active org units, positions and potential managers
        """
        ctx.policy.require(Action.EDIT_EMPLOYEE)

        org_units = await self.org_unit_repo.get_active()
        positions = await self.position_repo.get_active(org_unit_id)
        managers = await self.employee_repo.get_active(exclude_id=exclude_employee_id)

        return EmployeeFormOptions(
            org_units=[FormOption(value=o.id, label=o.name) for o in org_units],
            positions=[FormOption(value=p.id, label=p.title) for p in positions],
            managers=[
                FormOption(value=e.id, label=f"{full_name(e)} ({e.employee_code})")
                for e in managers
                if e.employment_status != EmploymentStatus.TERMINATED
            ],
        )
