"""Secure logging utilities to prevent information disclosure."""

import logging
import re
from functools import lru_cache
from typing import Any

from hrm_api.config import get_settings

_PATH_PATTERN = re.compile(r"['\"]?(/[a-zA-Z0-9_./\-]+|[A-Z]:\\[^\s'\"]+)['\"]?")
_URL_PATTERN = re.compile(r"(postgresql|postgres|sqlite|http|https)(\+\w+)?://[^\s]+")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+")
_JWT_PATTERN = re.compile(r"eyJ[\w\-]+\.[\w\-]+\.[\w\-]*")
# Long opaque strings; dashes excluded so principal UUIDs stay readable
_TOKEN_PATTERN = re.compile(r"[a-zA-Z0-9_]{32,}")

MAX_MESSAGE_LENGTH = 200


@lru_cache(maxsize=1)
def is_debug_mode() -> bool:
    """Check if application is running in debug mode."""
    return get_settings().debug


def sanitize_exception_message(error: Exception) -> str:
    """Sanitize exception message for logging in production.

    Removes file system paths, connection strings, e-mail addresses
    (employee personal data) and bearer tokens.

    Args:
        error: The exception to sanitize

    Returns:
        Sanitized error message suitable for production logs
    """
    error_msg = str(error)
    error_msg = _URL_PATTERN.sub("[URL]", error_msg)
    error_msg = _PATH_PATTERN.sub("[PATH]", error_msg)
    error_msg = _EMAIL_PATTERN.sub("[EMAIL]", error_msg)
    error_msg = _JWT_PATTERN.sub("[TOKEN]", error_msg)
    error_msg = _TOKEN_PATTERN.sub("[TOKEN]", error_msg)

    if len(error_msg) > MAX_MESSAGE_LENGTH:
        error_msg = error_msg[: MAX_MESSAGE_LENGTH - 3] + "..."

    return error_msg


def _log(
    logger: logging.Logger,
    level: int,
    message: str,
    error: Exception | None,
    **kwargs: Any,
) -> None:
    if is_debug_mode():
        if error:
            logger.log(level, f"{message}: {error}", exc_info=level >= logging.ERROR, extra=kwargs)
        else:
            logger.log(level, message, extra=kwargs)
    elif error:
        logger.log(level, f"{message}: {sanitize_exception_message(error)}")
    else:
        logger.log(level, message)


def log_error(
    logger: logging.Logger,
    message: str,
    error: Exception | None = None,
    **kwargs: Any,
) -> None:
    """Log an error with appropriate detail level based on environment.

    In debug mode, logs full exception details. Otherwise logs a sanitized
    message and drops the extra context.

    Args:
        logger: The logger instance to use
        message: The log message (should be generic, no personal data)
        error: Optional exception to include
        **kwargs: Additional context, only attached in debug mode
    """
    _log(logger, logging.ERROR, message, error, **kwargs)
