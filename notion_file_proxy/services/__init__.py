"""Service layer: Notion client, URL resolution, record-map rewriting."""

from notion_file_proxy.services.notion_client import (
    InvalidPageIdError,
    NotionClient,
    NotionClientError,
)
from notion_file_proxy.services.record_map_rewriter import (
    RecordMapRewriter,
    rewrite_notion_file_urls,
    rewrite_notion_pdf_urls,
)
from notion_file_proxy.services.url_resolver import (
    FileUrlNotFoundError,
    FileUrlResolver,
    Resolution,
    UpstreamUnavailableError,
)

__all__ = [
    "FileUrlNotFoundError",
    "FileUrlResolver",
    "InvalidPageIdError",
    "NotionClient",
    "NotionClientError",
    "RecordMapRewriter",
    "Resolution",
    "UpstreamUnavailableError",
    "rewrite_notion_file_urls",
    "rewrite_notion_pdf_urls",
]
