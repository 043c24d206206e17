"""Unit tests for the file redirect router.

Tests query validation, the signed/raw fallback as seen over HTTP,
host checks on the redirect target and error status codes.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from notion_file_proxy.config import REDIRECT_CACHE_CONTROL
from notion_file_proxy.routers.file_router import create_file_router
from notion_file_proxy.services.notion_client import InvalidPageIdError, NotionClientError
from notion_file_proxy.services.url_resolver import FileUrlResolver

from conftest import PAGE_ID, PDF_BLOCK_ID, RAW_PDF_URL, SIGNED_PDF_URL, make_block, make_record_map

URL = f"/api/notion-file?blockId={PDF_BLOCK_ID}&pageId={PAGE_ID}"


@pytest.fixture
def mock_notion_client():
    """Create a mock page fetcher."""
    return AsyncMock()


@pytest.fixture
def client(mock_notion_client):
    """Create test client with the redirect router."""
    app = FastAPI()
    resolver = FileUrlResolver(mock_notion_client, refetch_unsigned_on_miss=False)
    app.include_router(create_file_router(resolver))
    return TestClient(app, follow_redirects=False)


def _pdf_page(signed_urls=None, source=RAW_PDF_URL):
    return make_record_map(
        {PDF_BLOCK_ID: make_block(PDF_BLOCK_ID, "pdf", source)}, signed_urls
    )


class TestParameters:
    """Tests for query parameter validation."""

    def test_missing_page_id(self, client, mock_notion_client):
        response = client.get(f"/api/notion-file?blockId={PDF_BLOCK_ID}")

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing pageId parameter"
        mock_notion_client.get_page.assert_not_called()

    def test_missing_block_id(self, client, mock_notion_client):
        response = client.get(f"/api/notion-file?pageId={PAGE_ID}")

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing blockId parameter"
        mock_notion_client.get_page.assert_not_called()

    def test_empty_block_id(self, client, mock_notion_client):
        response = client.get(f"/api/notion-file?blockId=&pageId={PAGE_ID}")

        assert response.status_code == 400
        mock_notion_client.get_page.assert_not_called()

    def test_invalid_page_id_is_bad_gateway(self, client, mock_notion_client):
        mock_notion_client.get_page.side_effect = InvalidPageIdError("bad")

        response = client.get(f"/api/notion-file?blockId={PDF_BLOCK_ID}&pageId=nope")

        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to fetch signed URL"
        assert mock_notion_client.get_page.call_count == 2


class TestRedirect:
    """Tests for GET /api/notion-file."""

    def test_redirects_to_signed_url(self, client, mock_notion_client):
        mock_notion_client.get_page.return_value = _pdf_page({PDF_BLOCK_ID: SIGNED_PDF_URL})

        response = client.get(URL)

        assert response.status_code == 302
        assert response.headers["location"] == SIGNED_PDF_URL
        assert response.headers["cache-control"] == REDIRECT_CACHE_CONTROL
        mock_notion_client.get_page.assert_called_once()

    def test_raw_url_when_signing_missing(self, client, mock_notion_client):
        mock_notion_client.get_page.return_value = _pdf_page({})

        response = client.get(URL)

        assert response.status_code == 302
        assert response.headers["location"] == RAW_PDF_URL
        assert "cache-control" not in response.headers
        mock_notion_client.get_page.assert_called_once()

    def test_unsigned_fallback_when_signing_fails(self, client, mock_notion_client):
        mock_notion_client.get_page.side_effect = [
            NotionClientError("unauthorized", status_code=401),
            _pdf_page(),
        ]

        response = client.get(URL)

        assert response.status_code == 302
        assert response.headers["location"] == RAW_PDF_URL
        assert mock_notion_client.get_page.call_count == 2
        assert mock_notion_client.get_page.call_args.kwargs["sign_file_urls"] is False

    def test_not_found(self, client, mock_notion_client):
        mock_notion_client.get_page.return_value = make_record_map({}, {})

        response = client.get(URL)

        assert response.status_code == 404
        assert response.json()["detail"] == "File URL not found for block"
        mock_notion_client.get_page.assert_called_once()

    def test_disallowed_signed_host(self, client, mock_notion_client):
        mock_notion_client.get_page.return_value = _pdf_page(
            {PDF_BLOCK_ID: "https://evil.example.com/report.pdf"}
        )

        response = client.get(URL)

        assert response.status_code == 400
        assert response.json()["detail"] == "Unexpected redirect target"
        assert "location" not in response.headers

    def test_lookalike_host_rejected(self, client, mock_notion_client):
        mock_notion_client.get_page.return_value = _pdf_page(
            {}, source="https://evilamazonaws.com/report.pdf"
        )

        response = client.get(URL)

        assert response.status_code == 400

    def test_upstream_unavailable(self, client, mock_notion_client):
        mock_notion_client.get_page.side_effect = NotionClientError("down")

        response = client.get(URL)

        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to fetch signed URL"
        assert mock_notion_client.get_page.call_count == 2

    def test_custom_allow_list(self, mock_notion_client):
        app = FastAPI()
        resolver = FileUrlResolver(mock_notion_client, refetch_unsigned_on_miss=False)
        app.include_router(create_file_router(resolver, allowed_hosts=["files.example.com"]))
        client = TestClient(app, follow_redirects=False)
        mock_notion_client.get_page.return_value = _pdf_page(
            {PDF_BLOCK_ID: "https://cdn.files.example.com/report.pdf"}
        )

        assert client.get(URL).status_code == 302

        mock_notion_client.get_page.return_value = _pdf_page({PDF_BLOCK_ID: SIGNED_PDF_URL})
        assert client.get(URL).status_code == 400

    @pytest.mark.parametrize("method", ["post", "put", "delete"])
    def test_other_methods_not_allowed(self, client, mock_notion_client, method):
        response = getattr(client, method)(URL)

        assert response.status_code == 405
        mock_notion_client.get_page.assert_not_called()
