"""Streaming proxy for PDF blocks.

Browsers' PDF viewers want the file under the page's own origin (range
requests, no cross-origin redirect), so instead of redirecting this endpoint
fetches the freshly resolved upstream URL and relays status, a fixed set of
headers and the body.

Served under two paths with the same semantics:

- ``/api/assets-pdf?blockId=...&pageId=...``
- ``/assets-pdf/{pageId}/{blockId}`` (what the PDF rewriter emits)
"""

import logging
from collections.abc import AsyncIterator, Iterable, Mapping

import httpx
from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import Response, StreamingResponse
from starlette.background import BackgroundTask

from notion_file_proxy.config import STREAM_CACHE_CONTROL
from notion_file_proxy.observability.error_log_file import log_proxy_failure
from notion_file_proxy.observability.redaction import redact_url, sanitize_headers
from notion_file_proxy.routers.params import require_file_params
from notion_file_proxy.security.host_allowlist import enforce_allowed_host_or_400
from notion_file_proxy.services.url_resolver import FileUrlResolver

logger = logging.getLogger(__name__)

FORWARDED_REQUEST_HEADERS = ("range", "if-none-match", "if-modified-since")

PASSTHROUGH_HEADERS = (
    "accept-ranges",
    "cache-control",
    "content-length",
    "content-range",
    "content-type",
    "etag",
    "last-modified",
)


def forwarded_request_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Client headers sent upstream; everything else is dropped."""
    out = {name: headers[name] for name in FORWARDED_REQUEST_HEADERS if headers.get(name)}
    # The body is relayed raw, so it must match the forwarded length headers.
    out["accept-encoding"] = "identity"
    return out


def passthrough_response_headers(
    headers: Mapping[str, str], *, default_cache_control: str
) -> dict[str, str]:
    """Upstream headers relayed to the client, with a cache-control default."""
    out = {name: headers[name] for name in PASSTHROUGH_HEADERS if headers.get(name)}
    out.setdefault("cache-control", default_cache_control)
    return out


async def _relay_body(
    upstream: httpx.Response, *, page_id: str, block_id: str
) -> AsyncIterator[bytes]:
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    except Exception as e:
        # Headers are already out; re-raising makes the server drop the
        # connection instead of ending a truncated body cleanly.
        log_proxy_failure(
            "assets_pdf",
            e,
            page_id=page_id,
            block_id=block_id,
            extra={"phase": "stream"},
        )
        raise
    finally:
        await upstream.aclose()


def create_assets_pdf_router(
    resolver: FileUrlResolver,
    http_client: httpx.AsyncClient,
    *,
    allowed_hosts: Iterable[str] | None = None,
    cache_control: str = STREAM_CACHE_CONTROL,
) -> APIRouter:
    """Create the PDF streaming router.

    Args:
        resolver: Resolver using the stream policy (re-fetch unsigned when
            the signed record map has no URL for the block).
        http_client: Client used for the upstream file request.
        allowed_hosts: Hosts the proxy may fetch from.
        cache_control: Default ``Cache-Control`` when upstream sends none.

    Returns:
        APIRouter serving GET/HEAD on both PDF paths.
    """
    router = APIRouter(tags=["files"])
    hosts = tuple(allowed_hosts) if allowed_hosts is not None else None

    async def proxy_pdf(request: Request, block_id: str | None, page_id: str | None) -> Response:
        block_id, page_id = require_file_params(block_id, page_id)

        try:
            resolution = await resolver.resolve(page_id, block_id)
        except Exception as e:
            log_proxy_failure("assets_pdf", e, page_id=page_id, block_id=block_id)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to proxy PDF"
            )

        upstream_url = enforce_allowed_host_or_400(
            resolution.url, hosts, detail="Unexpected file host"
        )

        upstream_request = http_client.build_request(
            request.method,
            upstream_url,
            headers=forwarded_request_headers(request.headers),
        )
        try:
            upstream = await http_client.send(upstream_request, stream=True)
        except Exception as e:
            log_proxy_failure(
                "assets_pdf",
                e,
                page_id=page_id,
                block_id=block_id,
                extra={
                    "upstream": redact_url(upstream_url),
                    "headers": sanitize_headers(upstream_request.headers),
                },
            )
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to proxy PDF"
            )

        headers = passthrough_response_headers(
            upstream.headers, default_cache_control=cache_control
        )
        logger.debug(
            "Proxying %s %s -> %d (%s)",
            request.method,
            redact_url(upstream_url),
            upstream.status_code,
            resolution.source,
        )

        if request.method == "HEAD":
            await upstream.aclose()
            return Response(status_code=upstream.status_code, headers=headers)

        return StreamingResponse(
            _relay_body(upstream, page_id=page_id, block_id=block_id),
            status_code=upstream.status_code,
            headers=headers,
            background=BackgroundTask(upstream.aclose),
        )

    @router.api_route("/api/assets-pdf", methods=["GET", "HEAD"])
    async def assets_pdf(
        request: Request,
        block_id: str | None = Query(None, alias="blockId"),
        page_id: str | None = Query(None, alias="pageId"),
    ) -> Response:
        """Proxy a PDF block by query parameters."""
        return await proxy_pdf(request, block_id, page_id)

    @router.api_route("/assets-pdf/{page_id}/{block_id}", methods=["GET", "HEAD"])
    async def assets_pdf_path(request: Request, page_id: str, block_id: str) -> Response:
        """Proxy a PDF block by the path the PDF rewriter emits."""
        return await proxy_pdf(request, block_id, page_id)

    return router
