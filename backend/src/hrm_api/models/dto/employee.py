"""Employee DTOs."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from hrm_api.models.domain.employee import EmploymentStatus

# Hard cap on free-text reasons; the configured business limit is checked in
# the lifecycle service so the error can name the field.
MAX_REASON_INPUT_LENGTH = 5000


class EmployeeListItem(BaseModel):
    """Employee directory row with resolved names."""

    id: UUID
    employee_code: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str | None = None
    org_unit_id: UUID | None = None
    org_unit_name: str | None = None
    position_id: UUID | None = None
    position_title: str | None = None
    manager_id: UUID | None = None
    manager_name: str | None = None
    employment_status: EmploymentStatus
    is_active: bool
    hire_date: date | None = None
    termination_date: date | None = None


class EmployeeDetail(EmployeeListItem):
    """Employee detail with lifecycle and audit fields."""

    user_id: UUID | None = None
    termination_reason: str | None = None
    terminated_by: UUID | None = None
    terminated_at: datetime | None = None
    reactivation_reason: str | None = None
    reactivated_by: UUID | None = None
    reactivated_at: datetime | None = None
    created_at: datetime
    created_by: UUID | None = None
    updated_at: datetime
    updated_by: UUID | None = None


class EmployeeListResponse(BaseModel):
    """Employee list response DTO."""

    items: list[EmployeeListItem]
    total: int
    page: int
    page_size: int


class EmployeeCreate(BaseModel):
    """DTO for creating an employee. The employee code is generated."""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=50)
    org_unit_id: UUID
    position_id: UUID
    manager_id: UUID | None = None
    employment_status: EmploymentStatus = EmploymentStatus.ACTIVE
    hire_date: date | None = Field(default=None, description="Defaults to today")
    termination_date: date | None = None
    is_active: bool = True


class EmployeeUpdate(BaseModel):
    """DTO for a partial employee update.

    Only fields present in the request are applied; an explicit null clears
    a nullable field.
    """

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    org_unit_id: UUID | None = None
    position_id: UUID | None = None
    manager_id: UUID | None = None
    employment_status: EmploymentStatus | None = None
    hire_date: date | None = None
    termination_date: date | None = None
    is_active: bool | None = None


class TerminateEmployeeRequest(BaseModel):
    """Request to terminate an employee."""

    termination_date: date
    reason: str | None = Field(default=None, max_length=MAX_REASON_INPUT_LENGTH)


class ReactivateEmployeeRequest(BaseModel):
    """Request to reactivate a terminated employee."""

    reason: str | None = Field(default=None, max_length=MAX_REASON_INPUT_LENGTH)


class FormOption(BaseModel):
    """Select option."""

    value: UUID
    label: str


class EmployeeFormOptions(BaseModel):
    """Option lists for the employee create/edit form."""

    org_units: list[FormOption]
    positions: list[FormOption]
    managers: list[FormOption]
