"""Observability utilities (error log file, redaction)."""

from notion_file_proxy.observability.error_log_file import (
    log_proxy_failure,
    setup_error_log_file,
)
from notion_file_proxy.observability.redaction import redact_url, sanitize_headers

__all__ = [
    "log_proxy_failure",
    "redact_url",
    "sanitize_headers",
    "setup_error_log_file",
]
