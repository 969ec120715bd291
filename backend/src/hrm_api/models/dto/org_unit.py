"""Organization unit DTOs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class OrgUnitResponse(BaseModel):
    """Organization unit with its parent's name."""

    id: UUID
    code: str
    name: str
    description: str | None = None
    parent_id: UUID | None = None
    parent_name: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class OrgUnitDetail(OrgUnitResponse):
    """Organization unit detail."""

    created_by: UUID | None = None
    updated_by: UUID | None = None
    child_count: int = 0
    position_count: int = 0


class OrgUnitListResponse(BaseModel):
    """Organization unit list response DTO."""

    items: list[OrgUnitResponse]
    total: int
    page: int
    page_size: int


class OrgUnitCreate(BaseModel):
    """DTO for creating an organization unit."""

    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    parent_id: UUID | None = None
    is_active: bool = True


class OrgUnitUpdate(BaseModel):
    """DTO for updating an organization unit. The code cannot change."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    parent_id: UUID | None = None
    is_active: bool | None = None
