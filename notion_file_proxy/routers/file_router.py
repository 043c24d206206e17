"""Redirect endpoint for Notion file blocks.

``GET /api/notion-file?blockId=...&pageId=...`` looks up a fresh signed URL
for the block on every request and answers with a 302 to it, so links
written into rendered pages never expire. Works without a session token for
public workspaces (falling back to the block's raw URL); private workspaces
need ``NOTION_TOKEN``.
"""

from collections.abc import Iterable

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from notion_file_proxy.config import REDIRECT_CACHE_CONTROL
from notion_file_proxy.enums import UrlSource
from notion_file_proxy.observability.error_log_file import log_proxy_failure
from notion_file_proxy.routers.params import require_file_params
from notion_file_proxy.security.host_allowlist import enforce_allowed_host_or_400
from notion_file_proxy.services.url_resolver import (
    FileUrlNotFoundError,
    FileUrlResolver,
)


def create_file_router(
    resolver: FileUrlResolver,
    *,
    allowed_hosts: Iterable[str] | None = None,
    cache_control: str = REDIRECT_CACHE_CONTROL,
) -> APIRouter:
    """Create the redirect router with an injected resolver.

    Args:
        resolver: Resolver using the redirect policy (no unsigned re-fetch
            after a successful signed fetch).
        allowed_hosts: Hosts a redirect target may live on.
        cache_control: Sent with redirects to freshly signed URLs; must stay
            inside Notion's roughly one-hour signature window.

    Returns:
        APIRouter serving ``GET /api/notion-file``.
    """
    router = APIRouter(prefix="/api", tags=["files"])
    hosts = tuple(allowed_hosts) if allowed_hosts is not None else None

    @router.get("/notion-file", status_code=status.HTTP_302_FOUND)
    async def notion_file(
        block_id: str | None = Query(None, alias="blockId"),
        page_id: str | None = Query(None, alias="pageId"),
    ) -> RedirectResponse:
        """Redirect to the current URL of a file block.

        Raises:
            HTTPException: 400 missing parameter or unexpected host,
                404 no URL for the block, 502 Notion unreachable or
                page id unusable.
        """
        block_id, page_id = require_file_params(block_id, page_id)

        try:
            resolution = await resolver.resolve(page_id, block_id)
        except FileUrlNotFoundError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="File URL not found for block"
            )
        except Exception as e:
            log_proxy_failure("notion_file", e, page_id=page_id, block_id=block_id)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch signed URL"
            )

        url = enforce_allowed_host_or_400(
            resolution.url, hosts, detail="Unexpected redirect target"
        )

        headers = None
        if resolution.source is UrlSource.SIGNED:
            headers = {"Cache-Control": cache_control}
        return RedirectResponse(url, status_code=status.HTTP_302_FOUND, headers=headers)

    return router
