"""Pytest configuration and fixtures."""

import logging
from typing import Any

import pytest
import pytest_asyncio  # noqa: F401


# Configure pytest-asyncio to auto-detect async tests
pytest_plugins = ("pytest_asyncio",)

PAGE_ID = "0b7c6f0e-8f2a-4c5e-9d1a-3e4f5a6b7c8d"
PDF_BLOCK_ID = "11111111-2222-3333-4444-555555555555"
IMAGE_BLOCK_ID = "66666666-7777-8888-9999-000000000000"

SIGNED_PDF_URL = (
    "https://prod-files-secure.s3.us-west-2.amazonaws.com/ws/file/report.pdf"
    "?X-Amz-Algorithm=AWS4-HMAC-SHA256&X-Amz-Signature=deadbeef"
)
RAW_PDF_URL = "https://prod-files-secure.s3.us-west-2.amazonaws.com/ws/file/report.pdf"


def pytest_configure(config: pytest.Config) -> None:
    # httpx logs every request at INFO; keep test output readable.
    logging.getLogger("httpx").setLevel(logging.WARNING)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend."""
    return "asyncio"


def make_block(block_id: str, block_type: str, source: str | None = None) -> dict[str, Any]:
    value: dict[str, Any] = {"id": block_id, "type": block_type}
    if source is not None:
        value["properties"] = {"source": [[source]]}
    return {"role": "reader", "value": value}


def make_record_map(
    blocks: dict[str, dict[str, Any]],
    signed_urls: dict[str, Any] | None = None,
) -> dict[str, Any]:
    record_map: dict[str, Any] = {"block": dict(blocks)}
    if signed_urls is not None:
        record_map["signed_urls"] = dict(signed_urls)
    return record_map


@pytest.fixture
def block_factory():
    return make_block


@pytest.fixture
def record_map_factory():
    return make_record_map


@pytest.fixture
def page_id() -> str:
    return PAGE_ID


@pytest.fixture
def pdf_block_id() -> str:
    return PDF_BLOCK_ID


@pytest.fixture
def signed_record_map() -> dict[str, Any]:
    """Page with a signed PDF block and a signed image block."""
    return make_record_map(
        {
            PAGE_ID: make_block(PAGE_ID, "page"),
            PDF_BLOCK_ID: make_block(PDF_BLOCK_ID, "pdf", RAW_PDF_URL),
            IMAGE_BLOCK_ID: make_block(
                IMAGE_BLOCK_ID, "image", "https://prod-files-secure.s3.amazonaws.com/img.png"
            ),
        },
        {
            PDF_BLOCK_ID: SIGNED_PDF_URL,
            IMAGE_BLOCK_ID: "https://prod-files-secure.s3.amazonaws.com/img.png?X-Amz-Signature=1",
        },
    )


@pytest.fixture
def unsigned_record_map() -> dict[str, Any]:
    """Same page as fetched without URL signing."""
    return make_record_map(
        {
            PAGE_ID: make_block(PAGE_ID, "page"),
            PDF_BLOCK_ID: make_block(PDF_BLOCK_ID, "pdf", RAW_PDF_URL),
        }
    )
