"""SQLAlchemy ORM models package."""

from hrm_api.models.orm.audit_log import AuditLogORM
from hrm_api.models.orm.base import Base
from hrm_api.models.orm.employee import EmployeeORM
from hrm_api.models.orm.org_unit import OrgUnitORM
from hrm_api.models.orm.position import PositionORM
from hrm_api.models.orm.principal import PrincipalORM
from hrm_api.models.orm.user_role import UserRoleORM

__all__ = [
    "Base",
    "AuditLogORM",
    "EmployeeORM",
    "OrgUnitORM",
    "PositionORM",
    "PrincipalORM",
    "UserRoleORM",
]
