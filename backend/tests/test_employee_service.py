"""Employee directory, detail and edit tests."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select

from hrm_api.exceptions import EmployeeNotFoundError, PermissionDeniedError, ValidationError
from hrm_api.models.domain.employee import EmploymentStatus
from hrm_api.models.domain.role import AppRole
from hrm_api.models.dto.employee import EmployeeCreate, EmployeeUpdate
from hrm_api.models.orm import AuditLogORM
from hrm_api.services.audit_service import AuditAction
from hrm_api.services.employee_service import EmployeeService

from conftest import TODAY


@pytest.fixture
def service(session) -> EmployeeService:
    return EmployeeService(session)


class TestListEmployees:
    """Test the employee directory."""

    async def test_names_are_resolved(self, data, service, make_ctx) -> None:
        unit = await data.org_unit(code="ENG", name="Engineering")
        position = await data.position(unit, title="Backend Developer")
        boss = await data.employee(unit, position, first_name="Grace", last_name="Hopper")
        await data.employee(unit, position, first_name="Ada", last_name="Lovelace", manager_id=boss.id)

        response = await service.list_employees(make_ctx(AppRole.HR_MANAGER), sort_by="last_name")

        assert response.total == 2
        ada = response.items[1]
        assert ada.full_name == "Ada Lovelace"
        assert ada.org_unit_name == "Engineering"
        assert ada.position_title == "Backend Developer"
        assert ada.manager_name == "Grace Hopper"

    async def test_plain_employee_sees_only_self(self, data, service, make_ctx) -> None:
        principal, own = await data.linked_user(AppRole.EMPLOYEE)
        await data.employee()
        await data.employee()

        response = await service.list_employees(
            make_ctx(AppRole.EMPLOYEE, principal_id=principal.id)
        )

        assert [item.id for item in response.items] == [own.id]
        assert response.total == 1

    async def test_unlinked_employee_role_sees_nothing(self, data, service, make_ctx) -> None:
        await data.employee()

        response = await service.list_employees(make_ctx(AppRole.EMPLOYEE))

        assert response.items == []
        assert response.total == 0

    async def test_no_roles_denied(self, service, make_ctx) -> None:
        with pytest.raises(PermissionDeniedError):
            await service.list_employees(make_ctx())

    async def test_filters(self, data, service, make_ctx) -> None:
        sales = await data.org_unit(code="SALES")
        ops = await data.org_unit(code="OPS")
        await data.employee(sales, first_name="Linus", last_name="Sales")
        await data.employee(ops, first_name="Margaret", last_name="Ops")
        await data.employee(ops, employment_status="on_leave")
        ctx = make_ctx(AppRole.ADMIN)

        by_unit = await service.list_employees(ctx, org_unit_id=sales.id)
        by_status = await service.list_employees(ctx, status="on_leave")
        by_search = await service.list_employees(ctx, search="margaret ops")

        assert by_unit.total == 1
        assert by_status.total == 1
        assert [i.first_name for i in by_search.items] == ["Margaret"]

    async def test_search_wildcards_are_literal(self, data, service, make_ctx) -> None:
        await data.employee(first_name="Percy")

        response = await service.list_employees(make_ctx(AppRole.ADMIN), search="%")

        assert response.total == 0

    async def test_pagination(self, data, service, make_ctx) -> None:
        unit = await data.org_unit()
        for _ in range(5):
            await data.employee(unit)

        page = await service.list_employees(make_ctx(AppRole.ADMIN), page=2, page_size=2)

        assert page.total == 5
        assert len(page.items) == 2
        assert page.page == 2


class TestGetEmployee:
    """Test the employee detail."""

    async def test_detail_has_lifecycle_fields(self, data, service, make_ctx) -> None:
        employee = await data.employee()

        detail = await service.get_employee(employee.id, make_ctx(AppRole.MANAGER))

        assert detail.id == employee.id
        assert detail.employment_status == EmploymentStatus.ACTIVE
        assert detail.terminated_by is None
        assert detail.created_at is not None

    async def test_other_employee_is_not_found(self, data, service, make_ctx) -> None:
        """Invisible and missing records fail the same way."""
        principal, _ = await data.linked_user(AppRole.EMPLOYEE)
        other = await data.employee()
        ctx = make_ctx(AppRole.EMPLOYEE, principal_id=principal.id)

        with pytest.raises(EmployeeNotFoundError) as hidden:
            await service.get_employee(other.id, ctx)
        with pytest.raises(EmployeeNotFoundError) as missing:
            await service.get_employee(uuid4(), ctx)

        assert hidden.value.message == missing.value.message

    async def test_invisible_manager_name_is_hidden(self, data, service, make_ctx) -> None:
        employee = await data.employee(manager_id=uuid4())

        detail = await service.get_employee(employee.id, make_ctx(AppRole.ADMIN))

        assert detail.manager_name is None


class TestCreateEmployee:
    """Test employee creation."""

    def payload(self, unit, position, **overrides) -> EmployeeCreate:
        values = {
            "first_name": "Katherine",
            "last_name": "Johnson",
            "email": "katherine@example.com",
            "org_unit_id": unit.id,
            "position_id": position.id,
        }
        values.update(overrides)
        return EmployeeCreate(**values)

    async def test_code_is_generated_from_org_unit(self, data, service, make_ctx) -> None:
        unit = await data.org_unit(code="NASA")
        position = await data.position(unit)
        await data.employee(unit, position, employee_code="NASA-0007")
        await data.employee(unit, position, employee_code="NASA-LEGACY")

        detail = await service.create_employee(self.payload(unit, position), make_ctx(AppRole.HR_MANAGER))

        assert detail.employee_code == "NASA-0008"

    async def test_first_code_and_default_hire_date(self, session, data, service, make_ctx) -> None:
        unit = await data.org_unit(code="R_D")
        position = await data.position(unit)
        ctx = make_ctx(AppRole.ADMIN)

        detail = await service.create_employee(self.payload(unit, position), ctx)

        assert detail.employee_code == "R_D-0001"
        assert detail.hire_date is not None
        assert detail.created_by == ctx.principal_id
        actions = (await session.execute(select(AuditLogORM.action))).scalars().all()
        assert actions == [AuditAction.EMPLOYEE_CREATE]

    async def test_terminated_on_create_is_inactive(self, data, service, make_ctx) -> None:
        unit = await data.org_unit()
        position = await data.position(unit)

        detail = await service.create_employee(
            self.payload(
                unit,
                position,
                employment_status=EmploymentStatus.TERMINATED,
                termination_date=TODAY,
                is_active=True,
            ),
            make_ctx(AppRole.ADMIN),
        )

        assert detail.is_active is False

    async def test_active_with_termination_date_rejected(self, data, service, make_ctx) -> None:
        unit = await data.org_unit()
        position = await data.position(unit)

        with pytest.raises(ValidationError) as exc_info:
            await service.create_employee(
                self.payload(unit, position, termination_date=TODAY), make_ctx(AppRole.ADMIN)
            )

        assert {"employment_status", "termination_date"} <= set(exc_info.value.fields)

    async def test_unknown_org_unit_rejected(self, data, service, make_ctx) -> None:
        unit = await data.org_unit()
        position = await data.position(unit)

        with pytest.raises(ValidationError) as exc_info:
            await service.create_employee(
                self.payload(unit, position, org_unit_id=uuid4()), make_ctx(AppRole.ADMIN)
            )

        assert "org_unit_id" in exc_info.value.fields

    async def test_manager_role_cannot_create(self, data, service, make_ctx) -> None:
        unit = await data.org_unit()
        position = await data.position(unit)

        with pytest.raises(PermissionDeniedError):
            await service.create_employee(self.payload(unit, position), make_ctx(AppRole.MANAGER))


class TestUpdateEmployee:
    """Test employee edits."""

    async def test_partial_update_audits_old_and_new(self, session, data, service, make_ctx) -> None:
        employee = await data.employee(phone="111")
        ctx = make_ctx(AppRole.HR_MANAGER)

        detail = await service.update_employee(employee.id, EmployeeUpdate(last_name="Curie"), ctx)

        assert detail.last_name == "Curie"
        assert detail.phone == "111"
        assert detail.updated_by == ctx.principal_id
        entry = (await session.execute(select(AuditLogORM))).scalar_one()
        assert entry.action == AuditAction.EMPLOYEE_UPDATE
        assert entry.changes["last_name"]["new"] == "Curie"

    async def test_phone_is_redacted_in_audit(self, session, data, service, make_ctx) -> None:
        employee = await data.employee(phone="111")

        await service.update_employee(employee.id, EmployeeUpdate(phone="222"), make_ctx(AppRole.ADMIN))

        entry = (await session.execute(select(AuditLogORM))).scalar_one()
        assert entry.changes["phone"] == "[REDACTED]"

    async def test_no_change_writes_nothing(self, session, data, service, make_ctx) -> None:
        employee = await data.employee(first_name="Same")

        await service.update_employee(employee.id, EmployeeUpdate(first_name="Same"), make_ctx(AppRole.ADMIN))

        assert (await session.execute(select(AuditLogORM))).first() is None

    async def test_setting_active_with_termination_date_rejected(self, data, service, make_ctx) -> None:
        employee = await data.employee(
            employment_status="terminated",
            is_active=False,
            termination_date=TODAY - timedelta(days=3),
        )

        with pytest.raises(ValidationError) as exc_info:
            await service.update_employee(
                employee.id,
                EmployeeUpdate(employment_status=EmploymentStatus.ACTIVE),
                make_ctx(AppRole.ADMIN),
            )

        assert "employment_status" in exc_info.value.fields
        assert "termination_date" in exc_info.value.fields

    async def test_self_manager_rejected(self, data, service, make_ctx) -> None:
        employee = await data.employee()

        with pytest.raises(ValidationError):
            await service.update_employee(
                employee.id, EmployeeUpdate(manager_id=employee.id), make_ctx(AppRole.ADMIN)
            )

    async def test_clearing_position_rejected(self, data, service, make_ctx) -> None:
        employee = await data.employee()

        with pytest.raises(ValidationError) as exc_info:
            await service.update_employee(
                employee.id, EmployeeUpdate(position_id=None), make_ctx(AppRole.ADMIN)
            )

        assert "position_id" in exc_info.value.fields

    async def test_manager_cannot_edit(self, data, service, make_ctx) -> None:
        employee = await data.employee()

        with pytest.raises(PermissionDeniedError):
            await service.update_employee(
                employee.id, EmployeeUpdate(first_name="X"), make_ctx(AppRole.MANAGER)
            )


class TestFormOptions:
    """Test employee form option lists."""

    async def test_options_exclude_edited_and_terminated(self, data, service, make_ctx) -> None:
        unit = await data.org_unit(name="Finance")
        position = await data.position(unit, title="Controller")
        edited = await data.employee(unit, position)
        colleague = await data.employee(unit, position)
        await data.employee(unit, position, employment_status="terminated", is_active=False)

        options = await service.get_form_options(
            make_ctx(AppRole.HR_MANAGER), exclude_employee_id=edited.id
        )

        assert [o.value for o in options.managers] == [colleague.id]
        assert "Finance" in [o.label for o in options.org_units]
        assert "Controller" in [o.label for o in options.positions]

    async def test_employee_role_denied(self, service, make_ctx) -> None:
        with pytest.raises(PermissionDeniedError):
            await service.get_form_options(make_ctx(AppRole.EMPLOYEE))
