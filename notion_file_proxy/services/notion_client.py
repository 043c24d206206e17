"""Async client for the private Notion page API (``/api/v3``).

Only what the proxy needs is implemented: load a page's record map chunk by
chunk, optionally load blocks the chunks left out, and ask Notion to sign
the file URLs embedded in file blocks.

Authentication uses the ``token_v2`` cookie of a logged-in Notion session.
Public pages load without it; signing file URLs usually does not, and a
failure there surfaces as :class:`NotionClientError` for callers to handle.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

import httpx

from notion_file_proxy.enums import BlockType
from notion_file_proxy.models.domain import RecordMap

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://www.notion.so/api/v3"

SIGNABLE_BLOCK_TYPES = frozenset(
    {
        BlockType.PDF.value,
        BlockType.FILE.value,
        BlockType.AUDIO.value,
        BlockType.VIDEO.value,
        BlockType.IMAGE.value,
    }
)

# Sources that point at Notion's private file storage and need a signature.
SECURE_SOURCE_MARKERS = ("secure.notion-static.com", "prod-files-secure", "attachment:")

_PAGE_ID_RE = re.compile(
    r"([0-9a-f]{8})-?([0-9a-f]{4})-?([0-9a-f]{4})-?([0-9a-f]{4})-?([0-9a-f]{12})",
    flags=re.IGNORECASE,
)


class NotionClientError(Exception):
    """Raised when a Notion API call fails or returns something unusable."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidPageIdError(ValueError):
    """Raised when a string does not contain a Notion id."""


def parse_page_id(value: str) -> str:
    """Normalize a Notion id (dashed, undashed, or embedded in a URL/slug).

    Returns the lowercase dashed UUID form.
    """
    raw = (value or "").strip().split("?", 1)[0].split("#", 1)[0]
    matches = list(_PAGE_ID_RE.finditer(raw))
    if not matches:
        raise InvalidPageIdError(f"Not a Notion id: {value!r}")
    return "-".join(matches[-1].groups()).lower()


def _block_value(record_map: Mapping[str, Any] | None, block_id: str) -> Mapping[str, Any] | None:
    if not isinstance(record_map, Mapping):
        return None
    blocks = record_map.get("block")
    if not isinstance(blocks, Mapping):
        return None

    entry = blocks.get(block_id)
    if entry is None:
        try:
            entry = blocks.get(parse_page_id(block_id))
        except InvalidPageIdError:
            return None
    if not isinstance(entry, Mapping):
        return None
    value = entry.get("value")
    return value if isinstance(value, Mapping) else None


def get_raw_source_url(record_map: Mapping[str, Any] | None, block_id: str) -> str | None:
    """The unsigned ``properties.source[0][0]`` URL of a file block, if any."""
    block = _block_value(record_map, block_id)
    if block is None:
        return None
    try:
        raw_url = block["properties"]["source"][0][0]
    except (KeyError, IndexError, TypeError):
        return None
    return raw_url if isinstance(raw_url, str) and raw_url else None


def get_signed_url(record_map: Mapping[str, Any] | None, block_id: str) -> str | None:
    """The signed URL Notion issued for ``block_id``, if any."""
    if not isinstance(record_map, Mapping):
        return None
    signed_urls = record_map.get("signed_urls")
    if not isinstance(signed_urls, Mapping):
        return None

    url = signed_urls.get(block_id)
    if url is None:
        try:
            url = signed_urls.get(parse_page_id(block_id))
        except InvalidPageIdError:
            return None
    return url if isinstance(url, str) and url else None


def _unwrap_record(entry: Any) -> Any:
    # Newer API responses nest records one level deeper: {"value": {"value": {...}, "role": ...}}
    if isinstance(entry, dict):
        inner = entry.get("value")
        if isinstance(inner, dict) and "role" in inner and isinstance(inner.get("value"), dict):
            return inner
    return entry


def _merge_record_map(target: RecordMap, chunk: Mapping[str, Any]) -> None:
    for table, records in chunk.items():
        if not isinstance(records, Mapping):
            continue
        bucket = target.setdefault(table, {})
        for record_id, entry in records.items():
            bucket[record_id] = _unwrap_record(entry)


class NotionClient:
    """Fetch page record maps from Notion.

    Args:
        http_client: Shared ``httpx.AsyncClient``; its timeout applies.
        api_base_url: Base URL of the private API.
        auth_token: ``token_v2`` session cookie value.
        active_user: Optional ``x-notion-active-user-header`` user id.
        chunk_limit: Blocks requested per ``loadPageChunk`` call.
        max_chunks: Upper bound on chunk/sync round trips per page.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        api_base_url: str = DEFAULT_API_BASE_URL,
        auth_token: str | None = None,
        active_user: str | None = None,
        chunk_limit: int = 100,
        max_chunks: int = 10,
    ) -> None:
        self._http = http_client
        self.api_base_url = (api_base_url or DEFAULT_API_BASE_URL).rstrip("/")
        self._auth_token = (auth_token or "").strip() or None
        self._active_user = (active_user or "").strip() or None
        self.chunk_limit = chunk_limit
        self.max_chunks = max_chunks

    @property
    def authenticated(self) -> bool:
        return self._auth_token is not None

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self._auth_token:
            headers["cookie"] = f"token_v2={self._auth_token}"
        if self._active_user:
            headers["x-notion-active-user-header"] = self._active_user
        return headers

    async def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.api_base_url}/{endpoint}"
        try:
            response = await self._http.post(url, json=body, headers=self._headers())
        except httpx.HTTPError as e:
            raise NotionClientError(f"Notion {endpoint} request failed: {e}") from e

        if response.status_code >= 400:
            raise NotionClientError(
                f"Notion {endpoint} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise NotionClientError(f"Notion {endpoint} returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise NotionClientError(f"Notion {endpoint} returned an unexpected payload")
        return payload

    async def get_page(
        self,
        page_id: str,
        *,
        fetch_missing_blocks: bool = False,
        fetch_collections: bool = False,
        sign_file_urls: bool = True,
    ) -> RecordMap:
        """Load the record map of ``page_id``.

        Referenced sub-pages and collections are never followed; only
        ``fetch_collections=False`` is supported.

        Raises:
            InvalidPageIdError: ``page_id`` is not a Notion id.
            NotionClientError: Any API call failed, or the page is missing.
        """
        if fetch_collections:
            raise NotImplementedError("Collection queries are not supported")

        page_uuid = parse_page_id(page_id)
        record_map = await self._load_page_chunks(page_uuid)

        if page_uuid not in record_map.get("block", {}):
            raise NotionClientError(f"Notion page not found: {page_uuid}", status_code=404)

        if fetch_missing_blocks:
            await self._fetch_missing_blocks(record_map)

        if sign_file_urls:
            await self._add_signed_urls(record_map)

        return record_map

    async def _load_page_chunks(self, page_uuid: str) -> RecordMap:
        record_map: RecordMap = {"block": {}}
        cursor: dict[str, Any] = {"stack": []}

        for chunk_number in range(self.max_chunks):
            payload = await self._post(
                "loadPageChunk",
                {
                    "pageId": page_uuid,
                    "limit": self.chunk_limit,
                    "chunkNumber": chunk_number,
                    "cursor": cursor,
                    "verticalColumns": False,
                },
            )
            chunk = payload.get("recordMap")
            if isinstance(chunk, Mapping):
                _merge_record_map(record_map, chunk)

            cursor = payload.get("cursor") or {}
            if not isinstance(cursor, dict) or not cursor.get("stack"):
                break
        else:
            logger.warning(
                "Stopped loading page %s after %d chunks", page_uuid, self.max_chunks
            )

        return record_map

    def _missing_block_ids(self, record_map: RecordMap) -> list[str]:
        blocks = record_map.get("block", {})
        missing: list[str] = []
        for entry in blocks.values():
            value = entry.get("value") if isinstance(entry, Mapping) else None
            content = value.get("content") if isinstance(value, Mapping) else None
            if not isinstance(content, list):
                continue
            for child_id in content:
                if isinstance(child_id, str) and child_id not in blocks and child_id not in missing:
                    missing.append(child_id)
        return missing

    async def _fetch_missing_blocks(self, record_map: RecordMap) -> None:
        for _ in range(self.max_chunks):
            missing = self._missing_block_ids(record_map)
            if not missing:
                return

            payload = await self._post(
                "syncRecordValues",
                {
                    "requests": [
                        {"pointer": {"table": "block", "id": block_id}, "version": -1}
                        for block_id in missing
                    ]
                },
            )
            chunk = payload.get("recordMap")
            if not isinstance(chunk, Mapping) or not chunk.get("block"):
                return
            before = len(record_map["block"])
            _merge_record_map(record_map, chunk)
            if len(record_map["block"]) == before:
                return

    async def _add_signed_urls(self, record_map: RecordMap) -> None:
        record_map["signed_urls"] = {}

        instances: list[tuple[str, dict[str, Any]]] = []
        for block_id, entry in record_map.get("block", {}).items():
            block = entry.get("value") if isinstance(entry, Mapping) else None
            if not isinstance(block, Mapping) or block.get("type") not in SIGNABLE_BLOCK_TYPES:
                continue
            source = get_raw_source_url(record_map, block_id)
            if not source or not any(marker in source for marker in SECURE_SOURCE_MARKERS):
                continue
            instances.append(
                (
                    block_id,
                    {
                        "permissionRecord": {"table": "block", "id": block.get("id") or block_id},
                        "url": source,
                    },
                )
            )

        if not instances:
            return

        payload = await self._post(
            "getSignedFileUrls", {"urls": [instance for _, instance in instances]}
        )
        signed = payload.get("signedUrls")
        if not isinstance(signed, list):
            raise NotionClientError("Notion getSignedFileUrls returned no signedUrls")

        for (block_id, _), url in zip(instances, signed):
            if isinstance(url, str) and url:
                record_map["signed_urls"][block_id] = url
