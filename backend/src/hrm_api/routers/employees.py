"""Employees router."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from hrm_api.dependencies import get_employee_lifecycle_service, get_employee_service
from hrm_api.models.domain.employee import EmploymentStatus
from hrm_api.models.domain.principal import AuthContext
from hrm_api.models.dto.employee import (
    EmployeeCreate,
    EmployeeDetail,
    EmployeeFormOptions,
    EmployeeListResponse,
    EmployeeUpdate,
    ReactivateEmployeeRequest,
    TerminateEmployeeRequest,
)
from hrm_api.repositories.employee_repository import VALID_SORT_COLUMNS
from hrm_api.security.auth import require_action
from hrm_api.security.policy import Action
from hrm_api.security.rate_limit import SENSITIVE_OPERATION_LIMIT, limiter
from hrm_api.services.employee_lifecycle_service import EmployeeLifecycleService
from hrm_api.services.employee_service import EmployeeService
from hrm_api.utils.validation import sanitize_search, sanitize_status, validate_sort_by

router = APIRouter()

ALLOWED_EMPLOYEE_STATUSES = {s.value for s in EmploymentStatus}


@router.get("", response_model=EmployeeListResponse)
async def list_employees(
    ctx: Annotated[AuthContext, Depends(require_action(Action.VIEW_EMPLOYEES))],
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    search: str | None = Query(default=None, max_length=200),
    status: str | None = Query(default=None, max_length=50),
    org_unit_id: UUID | None = None,
    sort_by: str = Query(default="employee_code", max_length=50),
    sort_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    page: int = Query(default=1, ge=1, le=10000),
    page_size: int = Query(default=50, ge=1, le=200),
) -> EmployeeListResponse:
    """List employees visible to the caller."""
    return await service.list_employees(
        ctx,
        search=sanitize_search(search),
        status=sanitize_status(status, ALLOWED_EMPLOYEE_STATUSES),
        org_unit_id=org_unit_id,
        sort_by=validate_sort_by(sort_by, VALID_SORT_COLUMNS, "employee_code"),
        sort_dir=sort_dir,
        page=page,
        page_size=page_size,
    )


@router.get("/form-options", response_model=EmployeeFormOptions)
async def get_form_options(
    ctx: Annotated[AuthContext, Depends(require_action(Action.EDIT_EMPLOYEE))],
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    org_unit_id: UUID | None = None,
    exclude_employee_id: UUID | None = None,
) -> EmployeeFormOptions:
    """Get org unit, position and manager options for the employee form."""
    return await service.get_form_options(
        ctx, org_unit_id=org_unit_id, exclude_employee_id=exclude_employee_id
    )


@router.get("/{employee_id}", response_model=EmployeeDetail)
async def get_employee(
    employee_id: UUID,
    ctx: Annotated[AuthContext, Depends(require_action(Action.VIEW_EMPLOYEES))],
    service: Annotated[EmployeeService, Depends(get_employee_service)],
) -> EmployeeDetail:
    """Get employee detail."""
    return await service.get_employee(employee_id, ctx)


@router.post("", response_model=EmployeeDetail, status_code=status.HTTP_201_CREATED)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def create_employee(
    request: Request,
    body: EmployeeCreate,
    ctx: Annotated[AuthContext, Depends(require_action(Action.CREATE_EMPLOYEE))],
    service: Annotated[EmployeeService, Depends(get_employee_service)],
) -> EmployeeDetail:
    """Create an employee. Requires admin or HR manager."""
    return await service.create_employee(body, ctx, request=request)


@router.patch("/{employee_id}", response_model=EmployeeDetail)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_employee(
    request: Request,
    employee_id: UUID,
    body: EmployeeUpdate,
    ctx: Annotated[AuthContext, Depends(require_action(Action.EDIT_EMPLOYEE))],
    service: Annotated[EmployeeService, Depends(get_employee_service)],
) -> EmployeeDetail:
    """Update an employee. Requires admin or HR manager."""
    return await service.update_employee(employee_id, body, ctx, request=request)


@router.post("/{employee_id}/terminate", response_model=EmployeeDetail)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def terminate_employee(
    request: Request,
    employee_id: UUID,
    body: TerminateEmployeeRequest,
    ctx: Annotated[AuthContext, Depends(require_action(Action.TERMINATE_EMPLOYEE))],
    lifecycle: Annotated[EmployeeLifecycleService, Depends(get_employee_lifecycle_service)],
    service: Annotated[EmployeeService, Depends(get_employee_service)],
) -> EmployeeDetail:
    """Terminate an employee.

    Managers may only terminate employees the database lets them change.
    """
    employee = await lifecycle.terminate(
        employee_id, body.termination_date, body.reason, ctx, request=request
    )
    return await service.build_detail(employee)


@router.post("/{employee_id}/reactivate", response_model=EmployeeDetail)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def reactivate_employee(
    request: Request,
    employee_id: UUID,
    body: ReactivateEmployeeRequest,
    ctx: Annotated[AuthContext, Depends(require_action(Action.REACTIVATE_EMPLOYEE))],
    lifecycle: Annotated[EmployeeLifecycleService, Depends(get_employee_lifecycle_service)],
    service: Annotated[EmployeeService, Depends(get_employee_service)],
) -> EmployeeDetail:
    """Reactivate a terminated employee. Requires admin or HR manager."""
    employee = await lifecycle.reactivate(employee_id, body.reason, ctx, request=request)
    return await service.build_detail(employee)
