"""Record-map endpoints for page renderers.

Routers handle HTTP concerns only; rewriting lives in
:mod:`notion_file_proxy.services.record_map_rewriter`.
"""

import logging
from collections.abc import Iterable

from fastapi import APIRouter, HTTPException, Query, status

from notion_file_proxy.enums import RewriteVariant
from notion_file_proxy.models.domain import RewriteRecordMapRequest, RewriteRecordMapResponse
from notion_file_proxy.observability.error_log_file import log_proxy_failure
from notion_file_proxy.routers.params import invalid_page_id
from notion_file_proxy.services.notion_client import InvalidPageIdError
from notion_file_proxy.services.record_map_rewriter import rewriter_for
from notion_file_proxy.services.url_resolver import PageFetcher

logger = logging.getLogger(__name__)


def create_record_map_router(
    client: PageFetcher,
    *,
    allowed_hosts: Iterable[str] | None = None,
) -> APIRouter:
    """Create record-map router with an injected page fetcher.

    Args:
        client: Page fetcher used by ``GET /api/pages/{page_id}/record-map``.
        allowed_hosts: Hosts a signed URL must live on to be rewritten.

    Returns:
        APIRouter with the rewrite endpoints configured.
    """
    router = APIRouter(prefix="/api", tags=["record-map"])
    hosts = tuple(allowed_hosts) if allowed_hosts is not None else None

    @router.post("/record-map/rewrite", response_model=RewriteRecordMapResponse)
    async def rewrite_record_map(request: RewriteRecordMapRequest) -> RewriteRecordMapResponse:
        """Rewrite a record map the caller already fetched."""
        rewriter = rewriter_for(request.variant, allowed_hosts=hosts)
        record_map, rewritten = rewriter.rewrite_counted(request.record_map, request.page_id)
        return RewriteRecordMapResponse(
            page_id=request.page_id,
            record_map=record_map or {},
            rewritten=rewritten,
        )

    @router.get("/pages/{page_id}/record-map", response_model=RewriteRecordMapResponse)
    async def get_page_record_map(
        page_id: str,
        variant: RewriteVariant = Query(RewriteVariant.FILE),
    ) -> RewriteRecordMapResponse:
        """Fetch a page from Notion and return it with stable file links.

        Signing needs a session token; without one the page is returned
        unsigned, which leaves nothing to rewrite.

        Raises:
            HTTPException: 400 invalid page id, 502 Notion unreachable.
        """
        try:
            record_map = await client.get_page(
                page_id, fetch_missing_blocks=True, sign_file_urls=True
            )
        except InvalidPageIdError:
            raise invalid_page_id()
        except Exception as e:
            logger.warning("Signed page fetch failed for %s, retrying unsigned: %s", page_id, e)
            try:
                record_map = await client.get_page(
                    page_id, fetch_missing_blocks=True, sign_file_urls=False
                )
            except Exception as fallback_error:
                log_proxy_failure("record_map", fallback_error, page_id=page_id)
                raise HTTPException(
                    status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch page"
                )

        rewriter = rewriter_for(variant, allowed_hosts=hosts)
        rewritten_map, rewritten = rewriter.rewrite_counted(record_map, page_id)
        return RewriteRecordMapResponse(
            page_id=page_id,
            record_map=rewritten_map or {},
            rewritten=rewritten,
        )

    return router
