"""Employee domain model."""

from enum import StrEnum


class EmploymentStatus(StrEnum):
    """Employment status enum."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"
    TERMINATED = "terminated"
