"""Position DTOs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class PositionResponse(BaseModel):
    """Position with its org unit's name."""

    id: UUID
    code: str
    title: str
    description: str | None = None
    org_unit_id: UUID | None = None
    org_unit_name: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PositionDetail(PositionResponse):
    """Position detail."""

    created_by: UUID | None = None
    updated_by: UUID | None = None


class PositionListResponse(BaseModel):
    """Position list response DTO."""

    items: list[PositionResponse]
    total: int
    page: int
    page_size: int


class PositionCreate(BaseModel):
    """DTO for creating a position."""

    code: str = Field(min_length=1, max_length=50)
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    org_unit_id: UUID | None = None
    is_active: bool = True


class PositionUpdate(BaseModel):
    """DTO for updating a position. Code and org unit cannot change."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    is_active: bool | None = None
