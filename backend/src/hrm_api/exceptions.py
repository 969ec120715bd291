"""Domain-specific exceptions for the HRM API.

These exceptions provide a clean separation between service-layer errors
and HTTP responses, avoiding string matching in routers.
"""

from typing import Any


class HrmAPIError(Exception):
    """Base exception for all HRM API errors."""

    def __init__(self, message: str = "An error occurred", details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# =============================================================================
# Authentication / Authorization Errors (401, 403, 503)
# =============================================================================


class AuthenticationError(HrmAPIError):
    """Raised when no valid principal can be established for the request."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class RolesUnavailableError(HrmAPIError):
    """Raised when the role set of a principal cannot be fetched.

    The session may still be valid. Callers must block instead of
    continuing with an empty role set.
    """

    def __init__(self, principal_id: str | None = None) -> None:
        message = "Unable to load user roles. Please try again or contact the system administrator."
        details = {"principal_id": str(principal_id)} if principal_id else {}
        super().__init__(message, details)


class PermissionDeniedError(HrmAPIError):
    """Raised when the local permission policy rejects an action."""

    def __init__(self, action: str | None = None) -> None:
        details = {"action": action} if action else {}
        super().__init__("Access denied", details)


class PolicyDeniedError(HrmAPIError):
    """Raised when the database row-level policy rejects a mutation.

    Presented to users exactly like PermissionDeniedError, but it means the
    local policy allowed something the database refused.
    """

    def __init__(self, resource_type: str | None = None, resource_id: str | None = None) -> None:
        details: dict[str, Any] = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = str(resource_id)
        super().__init__("Access denied", details)


# =============================================================================
# Resource Not Found Errors (404)
# =============================================================================


class NotFoundError(HrmAPIError):
    """Raised when a resource is absent or not visible to the principal.

    Both causes produce the same error so that existence is not leaked.
    """

    def __init__(self, resource_type: str | None = None, resource_id: str | None = None) -> None:
        details: dict[str, Any] = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = str(resource_id)
        super().__init__("Resource not found", details)


class EmployeeNotFoundError(NotFoundError):
    """Raised when an employee cannot be found."""

    def __init__(self, employee_id: str | None = None) -> None:
        super().__init__("employee", employee_id)


class OrgUnitNotFoundError(NotFoundError):
    """Raised when an organization unit cannot be found."""

    def __init__(self, org_unit_id: str | None = None) -> None:
        super().__init__("org_unit", org_unit_id)


class PositionNotFoundError(NotFoundError):
    """Raised when a position cannot be found."""

    def __init__(self, position_id: str | None = None) -> None:
        super().__init__("position", position_id)


class UserNotFoundError(NotFoundError):
    """Raised when a user (principal) cannot be found."""

    def __init__(self, user_id: str | None = None) -> None:
        super().__init__("user", user_id)


# =============================================================================
# Conflict Errors (409)
# =============================================================================


class ConflictError(HrmAPIError):
    """Base class for resource conflict errors."""

    pass


class EmployeeAlreadyTerminatedError(ConflictError):
    """Raised when terminating an employee that is already terminated."""

    def __init__(self, employee_id: str | None = None) -> None:
        details = {"employee_id": str(employee_id)} if employee_id else {}
        super().__init__("Employee is already terminated", details)


class EmployeeNotTerminatedError(ConflictError):
    """Raised when reactivating an employee that is not terminated."""

    def __init__(self, employee_id: str | None = None) -> None:
        details = {"employee_id": str(employee_id)} if employee_id else {}
        super().__init__("Only terminated employees can be reactivated", details)


class EmployeeLinkConflictError(ConflictError):
    """Raised when an employee is linked to another user who holds roles."""

    def __init__(self, employee_id: str | None = None) -> None:
        details = {"employee_id": str(employee_id)} if employee_id else {}
        super().__init__("Employee is already linked to another user with roles", details)


class CodeAlreadyExistsError(ConflictError):
    """Raised when an org unit or position code is already taken."""

    def __init__(self, code: str | None = None) -> None:
        details = {"code": code} if code else {}
        super().__init__("Code already exists", details)


# =============================================================================
# Validation Errors (422)
# =============================================================================


class ValidationError(HrmAPIError):
    """Raised when an invariant would be violated; nothing was written.

    ``fields`` maps input field names to messages so the caller can show
    them next to the offending inputs.
    """

    def __init__(self, message: str, fields: dict[str, str] | None = None) -> None:
        self.fields = fields or {}
        details = {"fields": self.fields} if self.fields else {}
        super().__init__(message, details)
