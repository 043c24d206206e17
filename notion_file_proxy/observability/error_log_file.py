"""Error log file for upstream failures.

Signing failures (WARNING) and terminal proxy failures (ERROR) are written
to a rotating file next to the normal stdout log so they can be reviewed
without scraping the access log.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from notion_file_proxy.config import ProxyConfig


_error_file_handler: RotatingFileHandler | None = None


def setup_error_log_file(config: "ProxyConfig") -> RotatingFileHandler | None:
    """Attach a rotating error log handler to the root logger.

    Returns the handler, or None when disabled or the file cannot be opened.
    Calling it again replaces the previous handler.
    """
    global _error_file_handler

    if not config.error_log_file_enabled:
        return None

    log_level = getattr(logging, config.error_log_level.upper(), logging.WARNING)

    log_file = Path(config.error_log_file_path).expanduser()
    if not log_file.is_absolute():
        log_file = Path.cwd() / log_file
    log_file = log_file.resolve()

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=config.error_log_max_bytes,
            backupCount=config.error_log_backup_count,
            encoding="utf-8",
        )
    except (OSError, PermissionError) as e:
        print(f"Warning: Cannot create error log file {log_file}: {e}", file=sys.stderr)
        return None

    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    if _error_file_handler is not None:
        root_logger.removeHandler(_error_file_handler)
        _error_file_handler.close()
    root_logger.addHandler(handler)
    _error_file_handler = handler

    logging.getLogger(__name__).info(
        "Error log file handler initialized: %s (level=%s)", log_file, config.error_log_level
    )
    return handler


def get_error_log_handler() -> RotatingFileHandler | None:
    return _error_file_handler


def log_proxy_failure(
    route: str,
    error: BaseException | str,
    *,
    page_id: str | None = None,
    block_id: str | None = None,
    extra: dict | None = None,
) -> None:
    """Log a terminal proxy failure with request context.

    The error text goes to the log only; clients get a generic message.
    """
    logger = logging.getLogger(f"notion_file_proxy.routers.{route}")

    error_type = type(error).__name__ if isinstance(error, BaseException) else "Error"
    context_parts = [f"route={route}", f"error_type={error_type}"]
    if page_id:
        context_parts.append(f"page_id={page_id}")
    if block_id:
        context_parts.append(f"block_id={block_id}")
    if extra:
        for k, v in extra.items():
            context_parts.append(f"{k}={v}")

    cause = error.__cause__ if isinstance(error, BaseException) else None
    message = f"{error} (caused by {type(cause).__name__}: {cause})" if cause else str(error)
    logger.error("[%s] %s", " ".join(context_parts), message)
