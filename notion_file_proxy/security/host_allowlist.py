"""Upstream host allow-list.

Every URL this service redirects to or fetches must live on Notion's own
file hosting (``notion.so``) or on the S3 buckets behind it
(``amazonaws.com``). The same check guards the record-map rewriter, the
redirect handler and the streaming proxy.
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlsplit

from fastapi import HTTPException, status

DEFAULT_ALLOWED_HOSTS: tuple[str, ...] = ("amazonaws.com", "notion.so")
ALLOWED_SCHEMES = frozenset({"http", "https"})

DEFAULT_REJECTED_DETAIL = "Unexpected redirect target"


def _normalize_host(host: str) -> str:
    # ".notion.so" and "Notion.so" both mean "notion.so and its subdomains".
    return (host or "").strip().lower().lstrip(".")


def normalize_allowed_hosts(allowed_hosts: Iterable[str] | None) -> tuple[str, ...]:
    if allowed_hosts is None:
        return DEFAULT_ALLOWED_HOSTS

    out: list[str] = []
    for host in allowed_hosts:
        normalized = _normalize_host(host)
        if normalized and normalized not in out:
            out.append(normalized)
    return tuple(out)


def _hostname(url: str) -> str | None:
    try:
        parts = urlsplit(url.strip())
        if parts.scheme.lower() not in ALLOWED_SCHEMES:
            return None
        return parts.hostname
    except ValueError:
        # Malformed netloc, e.g. an unbalanced IPv6 bracket.
        return None


def is_allowed_host(url: object, allowed_hosts: Iterable[str] | None = None) -> bool:
    """Return True when ``url`` points at an allow-listed host or a subdomain of one.

    Never raises: non-strings, empty strings and unparsable URLs are simply
    not allowed.
    """
    if not isinstance(url, str) or not url:
        return False

    hostname = _hostname(url)
    if not hostname:
        return False

    for host in normalize_allowed_hosts(allowed_hosts):
        if hostname == host or hostname.endswith("." + host):
            return True
    return False


def enforce_allowed_host_or_400(
    url: object,
    allowed_hosts: Iterable[str] | None = None,
    *,
    detail: str = DEFAULT_REJECTED_DETAIL,
) -> str:
    """Return ``url`` unchanged, or raise a 400 if its host is not allowed."""
    if is_allowed_host(url, allowed_hosts):
        return url  # type: ignore[return-value]

    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class DisallowedHostError(Exception):
    """Raised when an outgoing request (or a redirect hop) leaves the allow-list."""


def allowed_host_request_hook(allowed_hosts: Iterable[str] | None = None):
    """Build an ``httpx`` request event hook enforcing the allow-list.

    Installed on the client that fetches files so that redirects followed by
    the client are checked too, not just the first URL.
    """
    hosts = normalize_allowed_hosts(allowed_hosts)

    async def check_request(request) -> None:
        if not is_allowed_host(str(request.url), hosts):
            raise DisallowedHostError(f"Refusing to fetch from {request.url.host}")

    return check_request
