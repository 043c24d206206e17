"""Unit tests for the error log file handler and failure logging."""

import logging

import pytest

from notion_file_proxy.config import ProxyConfig
from notion_file_proxy.observability.error_log_file import (
    get_error_log_handler,
    log_proxy_failure,
    setup_error_log_file,
)


@pytest.fixture
def remove_handler():
    yield
    handler = get_error_log_handler()
    if handler is not None:
        logging.getLogger().removeHandler(handler)
        handler.close()


def test_disabled_by_default():
    assert setup_error_log_file(ProxyConfig()) is None


def test_writes_errors_to_file(tmp_path, remove_handler):
    log_path = tmp_path / "logs" / "errors.log"
    config = ProxyConfig(error_log_file_enabled=True, error_log_file_path=str(log_path))

    handler = setup_error_log_file(config)

    assert handler is not None
    assert handler.level == logging.WARNING
    assert get_error_log_handler() is handler

    logging.getLogger("notion_file_proxy.test").info("not written")
    logging.getLogger("notion_file_proxy.test").error("upstream exploded")
    handler.flush()

    content = log_path.read_text()
    assert "upstream exploded" in content
    assert "not written" not in content


def test_setup_twice_replaces_handler(tmp_path, remove_handler):
    config = ProxyConfig(
        error_log_file_enabled=True, error_log_file_path=str(tmp_path / "errors.log")
    )

    first = setup_error_log_file(config)
    second = setup_error_log_file(config)

    root_handlers = logging.getLogger().handlers
    assert second in root_handlers
    assert first not in root_handlers


def test_log_proxy_failure_context(caplog):
    try:
        try:
            raise TimeoutError("read timed out")
        except TimeoutError as e:
            raise RuntimeError("Unsigned fetch failed") from e
    except RuntimeError as error:
        with caplog.at_level(logging.ERROR):
            log_proxy_failure(
                "assets_pdf",
                error,
                page_id="page-1",
                block_id="block-1",
                extra={"phase": "stream"},
            )

    record = caplog.records[-1]
    assert record.name == "notion_file_proxy.routers.assets_pdf"
    assert record.levelno == logging.ERROR
    message = record.getMessage()
    assert "route=assets_pdf" in message
    assert "error_type=RuntimeError" in message
    assert "page_id=page-1 block_id=block-1 phase=stream" in message
    assert "caused by TimeoutError: read timed out" in message
