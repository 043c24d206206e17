"""Security controls for upstream URLs."""

from notion_file_proxy.security.host_allowlist import (
    DEFAULT_ALLOWED_HOSTS,
    DisallowedHostError,
    allowed_host_request_hook,
    enforce_allowed_host_or_400,
    is_allowed_host,
    normalize_allowed_hosts,
)

__all__ = [
    "DEFAULT_ALLOWED_HOSTS",
    "DisallowedHostError",
    "allowed_host_request_hook",
    "enforce_allowed_host_or_400",
    "is_allowed_host",
    "normalize_allowed_hosts",
]
