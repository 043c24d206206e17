"""Record-map rewriting.

Notion hands out file URLs signed for roughly an hour. A rendered page that
embeds them directly breaks as soon as the signature expires, so file blocks
are pointed at this service instead; the proxy endpoints look up a fresh URL
at click time.

Image blocks are never rewritten: the page renderer optimises images through
its own pipeline and needs the original URL.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

from notion_file_proxy.enums import BlockType, RewriteVariant
from notion_file_proxy.models.domain import RecordMap
from notion_file_proxy.security.host_allowlist import is_allowed_host

logger = logging.getLogger(__name__)

PDF_BLOCK_TYPES = frozenset({BlockType.PDF.value})
FILE_BLOCK_TYPES = frozenset(
    {BlockType.PDF.value, BlockType.FILE.value, BlockType.AUDIO.value, BlockType.VIDEO.value}
)

PDF_PATH_TEMPLATE = "/assets-pdf/{page_id}/{block_id}"
FILE_PATH_TEMPLATE = "/api/notion-file?blockId={block_id}&pageId={page_id}"

# Characters JavaScript's encodeURIComponent leaves alone.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def block_type(record_map: Mapping[str, Any], block_id: str) -> str | None:
    blocks = record_map.get("block")
    if not isinstance(blocks, Mapping):
        return None
    entry = blocks.get(block_id)
    if not isinstance(entry, Mapping):
        return None
    value = entry.get("value")
    if not isinstance(value, Mapping):
        return None
    kind = value.get("type")
    return kind if isinstance(kind, str) else None


class RecordMapRewriter:
    """Replace signed file URLs with local proxy references.

    Args:
        block_types: Block types whose signed URLs are rewritten.
        path_template: ``str.format`` template with ``{block_id}`` and
            ``{page_id}`` placeholders. Both values are percent-encoded.
        allowed_hosts: Hosts a signed URL must live on to be rewritten.
    """

    def __init__(
        self,
        block_types: Iterable[str],
        path_template: str,
        *,
        allowed_hosts: Iterable[str] | None = None,
    ) -> None:
        self.block_types = frozenset(block_types)
        self.path_template = path_template
        self.allowed_hosts = tuple(allowed_hosts) if allowed_hosts is not None else None

    def local_reference(self, block_id: str, page_id: str) -> str:
        return self.path_template.format(
            block_id=encode_uri_component(block_id),
            page_id=encode_uri_component(page_id),
        )

    def should_rewrite(self, record_map: Mapping[str, Any], block_id: str, url: str) -> bool:
        kind = block_type(record_map, block_id)
        return (
            kind is not None
            and kind in self.block_types
            and is_allowed_host(url, self.allowed_hosts)
        )

    def rewrite(self, record_map: RecordMap | None, page_id: str) -> RecordMap | None:
        """Return a copy of ``record_map`` with matching signed URLs replaced.

        The input is never mutated. Only ``signed_urls`` is rebuilt; every
        other table is shared with the input. Entries whose value is not a
        string are dropped.
        """
        return self.rewrite_counted(record_map, page_id)[0]

    def rewrite_counted(
        self, record_map: RecordMap | None, page_id: str
    ) -> tuple[RecordMap | None, int]:
        """Like :meth:`rewrite`, also returning how many entries were replaced."""
        if not record_map:
            return record_map, 0

        signed_urls = record_map.get("signed_urls")
        if not isinstance(signed_urls, Mapping):
            return record_map, 0

        rewritten: dict[str, str] = {}
        replaced = 0
        for block_id, signed_url in signed_urls.items():
            if not isinstance(signed_url, str):
                continue

            if self.should_rewrite(record_map, block_id, signed_url):
                rewritten[block_id] = self.local_reference(block_id, page_id)
                replaced += 1
            else:
                rewritten[block_id] = signed_url

        logger.debug(
            "Rewrote %d of %d signed URLs for page %s", replaced, len(signed_urls), page_id
        )
        return {**record_map, "signed_urls": rewritten}, replaced


pdf_rewriter = RecordMapRewriter(PDF_BLOCK_TYPES, PDF_PATH_TEMPLATE)
file_rewriter = RecordMapRewriter(FILE_BLOCK_TYPES, FILE_PATH_TEMPLATE)


def rewriter_for(
    variant: RewriteVariant, *, allowed_hosts: Iterable[str] | None = None
) -> RecordMapRewriter:
    if variant == RewriteVariant.PDF:
        return RecordMapRewriter(PDF_BLOCK_TYPES, PDF_PATH_TEMPLATE, allowed_hosts=allowed_hosts)
    return RecordMapRewriter(FILE_BLOCK_TYPES, FILE_PATH_TEMPLATE, allowed_hosts=allowed_hosts)


def rewrite_notion_pdf_urls(record_map: RecordMap | None, page_id: str) -> RecordMap | None:
    """Point PDF blocks at ``/assets-pdf/<pageId>/<blockId>``."""
    return pdf_rewriter.rewrite(record_map, page_id)


def rewrite_notion_file_urls(record_map: RecordMap | None, page_id: str) -> RecordMap | None:
    """Point pdf/file/audio/video blocks at ``/api/notion-file``."""
    return file_rewriter.rewrite(record_map, page_id)
