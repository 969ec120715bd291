"""Domain models package."""

from hrm_api.models.domain.employee import EmploymentStatus
from hrm_api.models.domain.role import ALL_ROLES, AppRole, CapabilityFlags, RoleSet

__all__ = [
    "ALL_ROLES",
    "AppRole",
    "CapabilityFlags",
    "EmploymentStatus",
    "RoleSet",
]
