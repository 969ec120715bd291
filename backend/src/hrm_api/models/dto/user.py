"""User access DTOs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from hrm_api.models.domain.role import AppRole


class LinkedEmployeeInfo(BaseModel):
    """Employee linked to a user."""

    id: UUID
    code: str
    name: str
    org_unit_name: str | None = None
    position_title: str | None = None


class UserListItem(BaseModel):
    """User directory row."""

    id: UUID
    email: str | None = None
    roles: list[AppRole]
    employee: LinkedEmployeeInfo | None = None
    created_at: datetime
    last_seen_at: datetime | None = None


class UserListResponse(BaseModel):
    """User list response DTO."""

    items: list[UserListItem]
    total: int


class RoleChangeRequest(BaseModel):
    """Grant or revoke a single role."""

    role: AppRole


class EmployeeLinkRequest(BaseModel):
    """Link a user to an employee, or unlink with null."""

    employee_id: UUID | None = None


class UserAccessUpdate(BaseModel):
    """Target role set and employee link for a user."""

    roles: list[AppRole] = Field(default_factory=list)
    employee_id: UUID | None = None


class UserAccessChangeSummary(BaseModel):
    """What a user access save changed."""

    roles_added: list[AppRole] = []
    roles_removed: list[AppRole] = []
    link_changed: bool = False


class LinkCandidateOption(BaseModel):
    """Employee a user can be linked to.

    ``user_id`` is set when the employee is already linked. Such an employee
    can still be taken over while its current user holds no roles.
    """

    id: UUID
    code: str
    name: str
    user_id: UUID | None = None
