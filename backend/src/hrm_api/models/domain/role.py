"""Role domain model."""

import logging
from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class AppRole(StrEnum):
    """Application roles. Roles are additive; a principal may hold several."""

    ADMIN = "admin"
    HR_MANAGER = "hr_manager"
    MANAGER = "manager"
    EMPLOYEE = "employee"


ALL_ROLES: tuple[AppRole, ...] = (
    AppRole.ADMIN,
    AppRole.HR_MANAGER,
    AppRole.MANAGER,
    AppRole.EMPLOYEE,
)

RoleSet = frozenset[AppRole]

EMPTY_ROLES: RoleSet = frozenset()


def to_role_set(values: Iterable[str]) -> RoleSet:
    """Build a RoleSet from stored role strings.

    Unknown values are dropped with a warning rather than failing the
    whole resolution, so a stray row cannot lock everyone out.

    Args:
        values: Role strings as stored in user_roles

    Returns:
        Set of known roles
    """
    roles: set[AppRole] = set()
    for value in values:
        try:
            roles.add(AppRole(value))
        except ValueError:
            logger.warning(f"Ignoring unknown role value: {value!r}")
    return frozenset(roles)


class CapabilityFlags(BaseModel):
    """Boolean role flags derived from a RoleSet."""

    is_admin: bool = False
    is_hr_manager: bool = False
    is_manager: bool = False
    is_employee: bool = False

    model_config = ConfigDict(frozen=True)
