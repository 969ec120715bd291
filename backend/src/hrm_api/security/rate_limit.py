"""Rate limiting configuration for security-sensitive endpoints."""

from ipaddress import ip_address, ip_network
from typing import Sequence

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from hrm_api.config import get_settings


def _get_trusted_proxies() -> Sequence[str]:
    """Get list of trusted proxy IP ranges from configuration."""
    settings = get_settings()

    if settings.trusted_proxies_list:
        return settings.trusted_proxies_list

    if settings.environment == "development":
        return ["127.0.0.1", "::1"]

    return []


def _is_trusted_proxy(client_ip: str, trusted_proxies: Sequence[str]) -> bool:
    """Check if client IP is from a trusted proxy.

    Args:
        client_ip: The IP address to check.
        trusted_proxies: List of trusted IP addresses or CIDR ranges.

    Returns:
        True if the IP is trusted.
    """
    if not trusted_proxies:
        return False

    try:
        addr = ip_address(client_ip)
    except ValueError:
        return False

    for proxy in trusted_proxies:
        if "/" in proxy:
            if addr in ip_network(proxy, strict=False):
                return True
        elif addr == ip_address(proxy):
            return True
    return False


def get_real_client_ip(request: Request) -> str:
    """Extract real client IP, handling reverse proxy headers securely.

    X-Forwarded-For is only honoured when the direct peer is a trusted proxy.

    Args:
        request: The incoming request object.

    Returns:
        The client IP address.
    """
    direct_ip = get_remote_address(request)

    if _is_trusted_proxy(direct_ip, _get_trusted_proxies()):
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            client_ip = forwarded_for.split(",")[0].strip()
            try:
                ip_address(client_ip)
                return client_ip
            except ValueError:
                pass

    return direct_ip


_settings = get_settings()

# In-memory storage; limits are per process
limiter = Limiter(
    key_func=get_real_client_ip,
    default_limits=[f"{_settings.rate_limit_default}/minute"],
    enabled=_settings.rate_limit_enabled,
)

API_DEFAULT_LIMIT = f"{_settings.rate_limit_default}/minute"
# Lifecycle transitions and access changes
SENSITIVE_OPERATION_LIMIT = f"{_settings.rate_limit_sensitive}/minute"
