"""Centralized dependency injection factories for FastAPI."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrm_api.database import get_db
from hrm_api.services.employee_lifecycle_service import EmployeeLifecycleService
from hrm_api.services.employee_service import EmployeeService
from hrm_api.services.org_unit_service import OrgUnitService
from hrm_api.services.position_service import PositionService
from hrm_api.services.role_management_service import RoleManagementService
from hrm_api.services.role_resolution_service import RoleResolutionService
from hrm_api.services.user_directory_service import UserDirectoryService


# =============================================================================
# Auth Service Factories
# =============================================================================


def get_role_resolution_service(db: AsyncSession = Depends(get_db)) -> RoleResolutionService:
    """Get RoleResolutionService instance."""
    return RoleResolutionService(db)


# =============================================================================
# HRM Service Factories
# =============================================================================


def get_employee_service(db: AsyncSession = Depends(get_db)) -> EmployeeService:
    """Get EmployeeService instance."""
    return EmployeeService(db)


def get_employee_lifecycle_service(db: AsyncSession = Depends(get_db)) -> EmployeeLifecycleService:
    """Get EmployeeLifecycleService instance."""
    return EmployeeLifecycleService(db)


def get_org_unit_service(db: AsyncSession = Depends(get_db)) -> OrgUnitService:
    """Get OrgUnitService instance."""
    return OrgUnitService(db)


def get_position_service(db: AsyncSession = Depends(get_db)) -> PositionService:
    """Get PositionService instance."""
    return PositionService(db)


# =============================================================================
# User Access Service Factories
# =============================================================================


def get_role_management_service(db: AsyncSession = Depends(get_db)) -> RoleManagementService:
    """Get RoleManagementService instance."""
    return RoleManagementService(db)


def get_user_directory_service(db: AsyncSession = Depends(get_db)) -> UserDirectoryService:
    """Get UserDirectoryService instance."""
    return UserDirectoryService(db)
