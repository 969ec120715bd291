"""Input validation utilities to prevent injection attacks."""

import re

# Maximum lengths for common fields
MAX_SEARCH_LENGTH = 200
MAX_CODE_LENGTH = 50
MAX_STATUS_LENGTH = 50

# Org unit and position codes: uppercase letters, digits, dash and underscore
CODE_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9_\-]*$")


def sanitize_search(search: str | None, max_length: int = MAX_SEARCH_LENGTH) -> str | None:
    """Sanitize search input.

    Args:
        search: Raw search string
        max_length: Maximum allowed length

    Returns:
        Sanitized search string or None
    """
    if search is None:
        return None

    search = search[:max_length]

    # SQLAlchemy parameterizes these anyway
    search = search.replace(";", "").replace("--", "")

    return search.strip() or None


def normalize_code(code: str | None, max_length: int = MAX_CODE_LENGTH) -> str | None:
    """Normalize an org unit or position code.

    Args:
        code: Raw code
        max_length: Maximum allowed length

    Returns:
        Upper-cased code, or None if empty or containing unsafe characters
    """
    if code is None:
        return None

    code = code.strip().upper()
    if not code or len(code) > max_length:
        return None

    if not CODE_PATTERN.match(code):
        return None

    return code


def validate_sort_by(sort_by: str, allowed_columns: set[str], default: str) -> str:
    """Validate sort column against whitelist.

    Args:
        sort_by: Raw sort column name
        allowed_columns: Set of allowed column names
        default: Default column if invalid

    Returns:
        Validated sort column name
    """
    if sort_by and sort_by in allowed_columns:
        return sort_by
    return default


def sanitize_status(status: str | None, allowed_values: set[str] | None = None) -> str | None:
    """Sanitize status filter input.

    Args:
        status: Raw status string
        allowed_values: Optional set of allowed status values

    Returns:
        Sanitized status string or None
    """
    if status is None:
        return None

    status = status[:MAX_STATUS_LENGTH].strip().lower()

    if not status:
        return None

    if allowed_values and status not in allowed_values:
        return None

    return status


def normalize_reason(reason: str | None) -> str | None:
    """Trim a free-text reason; blank becomes None."""
    if reason is None:
        return None
    return reason.strip() or None


def escape_like_wildcards(value: str) -> str:
    """Escape SQL LIKE wildcards to prevent injection.

    The % and _ characters have special meaning in SQL LIKE patterns:
    - % matches any sequence of characters
    - _ matches any single character

    Args:
        value: Raw string value to escape

    Returns:
        Escaped string safe for use in LIKE patterns

    Example:
        >>> escape_like_wildcards("test%value")
        'test\\%value'
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
