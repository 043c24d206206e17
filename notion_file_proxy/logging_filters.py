"""Logging setup and filters shared by ``python -m notion_file_proxy.main``
and ``uvicorn notion_file_proxy.asgi:app``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from typing import Any

from notion_file_proxy.observability.redaction import redact_text

QUIET_ACCESS_PATHS = ("/health",)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SuppressAccessLogPaths(logging.Filter):
    """Drop Uvicorn access log records for probe endpoints such as ``/health``."""

    def __init__(self, paths: Iterable[str] = QUIET_ACCESS_PATHS) -> None:
        super().__init__()
        self.paths = tuple(paths)

    def _is_quiet(self, path: str) -> bool:
        return any(path == p or path.startswith(p + "?") for p in self.paths)

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (filter)
        # Uvicorn's access logger formats
        #   (client_addr, method, full_path, http_version, status_code)
        args: Any = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            return not self._is_quiet(str(args[2]))

        message = record.getMessage()
        for p in self.paths:
            if f'"GET {p} ' in message or f'"HEAD {p} ' in message:
                return False
        return True


class RedactSignedUrls(logging.Filter):
    """Strip URL signatures that leak into access log lines via the query string."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (filter)
        args: Any = record.args
        if isinstance(args, tuple) and len(args) >= 3 and isinstance(args[2], str):
            record.args = (*args[:2], redact_text(args[2]), *args[3:])
        return True


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging to stdout once per process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def install_uvicorn_access_log_filters() -> None:
    """Install filters on Uvicorn's access logger. Safe to call repeatedly."""
    access_logger = logging.getLogger("uvicorn.access")

    if not any(isinstance(f, SuppressAccessLogPaths) for f in access_logger.filters):
        access_logger.addFilter(SuppressAccessLogPaths())
    if not any(isinstance(f, RedactSignedUrls) for f in access_logger.filters):
        access_logger.addFilter(RedactSignedUrls())
