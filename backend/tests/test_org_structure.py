"""Organization unit and position service tests."""

from uuid import uuid4

import pytest

from hrm_api.exceptions import (
    CodeAlreadyExistsError,
    OrgUnitNotFoundError,
    PermissionDeniedError,
    PositionNotFoundError,
    ValidationError,
)
from hrm_api.models.domain.role import AppRole
from hrm_api.models.dto.org_unit import OrgUnitCreate, OrgUnitUpdate
from hrm_api.models.dto.position import PositionCreate, PositionUpdate
from hrm_api.services.org_unit_service import CYCLE_MESSAGE, SELF_PARENT_MESSAGE, OrgUnitService
from hrm_api.services.position_service import PositionService


@pytest.fixture
def org_units(session) -> OrgUnitService:
    return OrgUnitService(session)


@pytest.fixture
def positions(session) -> PositionService:
    return PositionService(session)


class TestOrgUnitRead:
    """Test org unit listing and detail."""

    async def test_list_with_parent_names(self, data, org_units, make_ctx) -> None:
        root = await data.org_unit(code="HQ", name="Headquarters")
        await data.org_unit(code="IT", name="IT", parent_id=root.id)

        response = await org_units.list_org_units(make_ctx(AppRole.MANAGER))

        by_code = {o.code: o for o in response.items}
        assert response.total == 2
        assert by_code["IT"].parent_name == "Headquarters"
        assert by_code["HQ"].parent_name is None

    async def test_search(self, data, org_units, make_ctx) -> None:
        await data.org_unit(code="FIN", name="Finance")
        await data.org_unit(code="LEG", name="Legal")

        response = await org_units.list_org_units(make_ctx(AppRole.ADMIN), search="fin")

        assert [o.code for o in response.items] == ["FIN"]

    async def test_detail_counts(self, data, org_units, make_ctx) -> None:
        root = await data.org_unit()
        await data.org_unit(parent_id=root.id)
        await data.org_unit(parent_id=root.id)
        await data.position(root)

        detail = await org_units.get_org_unit(root.id, make_ctx(AppRole.HR_MANAGER))

        assert detail.child_count == 2
        assert detail.position_count == 1

    async def test_employee_role_denied(self, org_units, make_ctx) -> None:
        with pytest.raises(PermissionDeniedError):
            await org_units.list_org_units(make_ctx(AppRole.EMPLOYEE))

    async def test_missing(self, org_units, make_ctx) -> None:
        with pytest.raises(OrgUnitNotFoundError):
            await org_units.get_org_unit(uuid4(), make_ctx(AppRole.ADMIN))


class TestOrgUnitWrite:
    """Test org unit creation and edits."""

    async def test_create_normalizes_code(self, org_units, make_ctx) -> None:
        ctx = make_ctx(AppRole.HR_MANAGER)

        detail = await org_units.create_org_unit(OrgUnitCreate(code=" ops ", name=" Operations "), ctx)

        assert detail.code == "OPS"
        assert detail.name == "Operations"
        assert detail.created_by == ctx.principal_id

    async def test_duplicate_code(self, data, org_units, make_ctx) -> None:
        await data.org_unit(code="OPS")

        with pytest.raises(CodeAlreadyExistsError):
            await org_units.create_org_unit(OrgUnitCreate(code="ops", name="Ops"), make_ctx(AppRole.ADMIN))

    async def test_invalid_code(self, org_units, make_ctx) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await org_units.create_org_unit(OrgUnitCreate(code="a b", name="X"), make_ctx(AppRole.ADMIN))
        assert "code" in exc_info.value.fields

    async def test_manager_cannot_create(self, org_units, make_ctx) -> None:
        with pytest.raises(PermissionDeniedError):
            await org_units.create_org_unit(OrgUnitCreate(code="X", name="X"), make_ctx(AppRole.MANAGER))

    async def test_manager_may_edit(self, data, org_units, make_ctx) -> None:
        """Manager edit grants are provisional; the database has the final say."""
        unit = await data.org_unit(name="Old")

        detail = await org_units.update_org_unit(
            unit.id, OrgUnitUpdate(name="New"), make_ctx(AppRole.MANAGER)
        )

        assert detail.name == "New"

    async def test_self_parent_rejected(self, data, org_units, make_ctx) -> None:
        unit = await data.org_unit()

        with pytest.raises(ValidationError) as exc_info:
            await org_units.update_org_unit(
                unit.id, OrgUnitUpdate(parent_id=unit.id), make_ctx(AppRole.ADMIN)
            )

        assert exc_info.value.message == SELF_PARENT_MESSAGE

    async def test_multi_level_cycle_rejected(self, data, org_units, make_ctx) -> None:
        a = await data.org_unit(code="A")
        b = await data.org_unit(code="B", parent_id=a.id)
        c = await data.org_unit(code="C", parent_id=b.id)

        with pytest.raises(ValidationError) as exc_info:
            await org_units.update_org_unit(a.id, OrgUnitUpdate(parent_id=c.id), make_ctx(AppRole.ADMIN))

        assert exc_info.value.fields["parent_id"] == CYCLE_MESSAGE

    async def test_move_under_sibling(self, data, org_units, make_ctx) -> None:
        root = await data.org_unit()
        a = await data.org_unit(parent_id=root.id)
        b = await data.org_unit(parent_id=root.id)

        detail = await org_units.update_org_unit(a.id, OrgUnitUpdate(parent_id=b.id), make_ctx(AppRole.ADMIN))

        assert detail.parent_id == b.id

    async def test_clear_parent(self, data, org_units, make_ctx) -> None:
        root = await data.org_unit()
        child = await data.org_unit(parent_id=root.id)

        detail = await org_units.update_org_unit(
            child.id, OrgUnitUpdate(parent_id=None), make_ctx(AppRole.ADMIN)
        )

        assert detail.parent_id is None

    async def test_unknown_parent_rejected(self, data, org_units, make_ctx) -> None:
        unit = await data.org_unit()

        with pytest.raises(ValidationError):
            await org_units.update_org_unit(unit.id, OrgUnitUpdate(parent_id=uuid4()), make_ctx(AppRole.ADMIN))


class TestPositions:
    """Test position operations."""

    async def test_create_and_read(self, data, positions, make_ctx) -> None:
        unit = await data.org_unit(name="Engineering")
        ctx = make_ctx(AppRole.HR_MANAGER)

        created = await positions.create_position(
            PositionCreate(code="dev", title="Developer", org_unit_id=unit.id), ctx
        )
        detail = await positions.get_position(created.id, make_ctx(AppRole.MANAGER))

        assert created.code == "DEV"
        assert detail.org_unit_name == "Engineering"

    async def test_filter_by_org_unit(self, data, positions, make_ctx) -> None:
        a = await data.org_unit()
        b = await data.org_unit()
        await data.position(a)
        await data.position(b)

        response = await positions.list_positions(make_ctx(AppRole.ADMIN), org_unit_id=a.id)

        assert response.total == 1
        assert response.items[0].org_unit_id == a.id

    async def test_duplicate_code(self, data, positions, make_ctx) -> None:
        unit = await data.org_unit()
        await data.position(unit, code="DEV")

        with pytest.raises(CodeAlreadyExistsError):
            await positions.create_position(
                PositionCreate(code="DEV", title="Dev", org_unit_id=unit.id), make_ctx(AppRole.ADMIN)
            )

    async def test_unknown_org_unit(self, positions, make_ctx) -> None:
        with pytest.raises(ValidationError):
            await positions.create_position(
                PositionCreate(code="X", title="X", org_unit_id=uuid4()), make_ctx(AppRole.ADMIN)
            )

    async def test_update_title(self, data, positions, make_ctx) -> None:
        unit = await data.org_unit()
        position = await data.position(unit, title="Junior")

        detail = await positions.update_position(
            position.id, PositionUpdate(title="  Senior "), make_ctx(AppRole.ADMIN)
        )

        assert detail.title == "Senior"
        assert detail.code == position.code

    async def test_missing(self, positions, make_ctx) -> None:
        with pytest.raises(PositionNotFoundError):
            await positions.update_position(uuid4(), PositionUpdate(title="X"), make_ctx(AppRole.ADMIN))

    async def test_employee_role_denied(self, positions, make_ctx) -> None:
        with pytest.raises(PermissionDeniedError):
            await positions.list_positions(make_ctx(AppRole.EMPLOYEE))
