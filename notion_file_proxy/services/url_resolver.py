"""Resolve a fresh upstream URL for one file block.

Resolution is a small state machine run once per request::

    FETCH_SIGNED -> USE_SIGNED -> FALLBACK_RAW -> FETCH_UNSIGNED -> FAIL

A signed fetch that raises (typically: no session token for a private
workspace) goes straight to FETCH_UNSIGNED. A signed fetch that succeeds but
yields no URL only re-fetches unsigned when the resolver's policy says so;
the redirect endpoint gives up there, the streaming proxy tries once more.
The two fetches are never issued concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from notion_file_proxy.enums import ResolutionStep, UrlSource
from notion_file_proxy.models.domain import RecordMap
from notion_file_proxy.observability.redaction import redact_url
from notion_file_proxy.services.notion_client import (
    get_raw_source_url,
    get_signed_url,
)

logger = logging.getLogger(__name__)


class PageFetcher(Protocol):
    async def get_page(
        self,
        page_id: str,
        *,
        fetch_missing_blocks: bool = ...,
        fetch_collections: bool = ...,
        sign_file_urls: bool = ...,
    ) -> RecordMap: ...


class FileUrlNotFoundError(Exception):
    """No signed or raw URL exists for the block."""


class UpstreamUnavailableError(Exception):
    """Notion could not be reached even without URL signing."""


@dataclass
class Resolution:
    """A resolved upstream URL.

    Attributes:
        url: The URL to redirect to or fetch. Not yet host-checked.
        source: Which step produced it.
        steps: States visited, in order.
    """

    url: str
    source: UrlSource
    steps: list[ResolutionStep] = field(default_factory=list)


class FileUrlResolver:
    """Run the resolution state machine against a page fetcher.

    Args:
        client: Anything with an async ``get_page`` like
            :class:`~notion_file_proxy.services.notion_client.NotionClient`.
        refetch_unsigned_on_miss: Re-fetch the page unsigned when a successful
            signed fetch has neither a signed nor a raw URL for the block.
    """

    def __init__(self, client: PageFetcher, *, refetch_unsigned_on_miss: bool) -> None:
        self.client = client
        self.refetch_unsigned_on_miss = refetch_unsigned_on_miss

    async def _fetch(self, page_id: str, *, sign_file_urls: bool) -> RecordMap:
        return await self.client.get_page(
            page_id,
            fetch_missing_blocks=False,
            fetch_collections=False,
            sign_file_urls=sign_file_urls,
        )

    async def resolve(self, page_id: str, block_id: str) -> Resolution:
        """Resolve the current upstream URL of ``block_id`` on ``page_id``.

        Raises:
            FileUrlNotFoundError: The block has no usable URL.
            UpstreamUnavailableError: The unsigned fallback fetch failed too,
                including when ``page_id`` is not a Notion id.
        """
        steps: list[ResolutionStep] = []
        record_map: Any = None
        unsigned_fetched = False
        step = ResolutionStep.FETCH_SIGNED

        while True:
            steps.append(step)

            if step is ResolutionStep.FETCH_SIGNED:
                try:
                    record_map = await self._fetch(page_id, sign_file_urls=True)
                    step = ResolutionStep.USE_SIGNED
                except Exception as e:
                    logger.warning(
                        "Signed fetch failed for page %s (missing NOTION_TOKEN?), "
                        "falling back to raw URL: %s",
                        page_id,
                        e,
                    )
                    step = ResolutionStep.FETCH_UNSIGNED

            elif step is ResolutionStep.USE_SIGNED:
                url = get_signed_url(record_map, block_id)
                if url:
                    return Resolution(url=url, source=UrlSource.SIGNED, steps=steps)
                step = ResolutionStep.FALLBACK_RAW

            elif step is ResolutionStep.FALLBACK_RAW:
                url = get_raw_source_url(record_map, block_id)
                if url:
                    source = UrlSource.RAW_UNSIGNED if unsigned_fetched else UrlSource.RAW
                    logger.info(
                        "Using raw source URL for block %s: %s", block_id, redact_url(url)
                    )
                    return Resolution(url=url, source=source, steps=steps)
                if self.refetch_unsigned_on_miss and not unsigned_fetched:
                    step = ResolutionStep.FETCH_UNSIGNED
                else:
                    step = ResolutionStep.FAIL

            elif step is ResolutionStep.FETCH_UNSIGNED:
                unsigned_fetched = True
                try:
                    record_map = await self._fetch(page_id, sign_file_urls=False)
                except Exception as e:
                    raise UpstreamUnavailableError(
                        f"Unsigned fetch failed for page {page_id}"
                    ) from e
                step = ResolutionStep.FALLBACK_RAW

            else:
                raise FileUrlNotFoundError(
                    f"File URL not found for block {block_id} on page {page_id}"
                )
