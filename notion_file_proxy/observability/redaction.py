"""Redaction helpers to keep credentials and URL signatures out of logs.

Signed Notion/S3 URLs carry their signature in the query string
(``X-Amz-Signature``, ``X-Amz-Credential``, ...). Anyone holding a logged
URL could use it until it expires, so URLs are logged without their query.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

_REPLACEMENT = "[REDACTED]"
_TRUNC_SUFFIX = "…(truncated)"

_SECRET_HEADER_RE = re.compile(
    r"^(cookie|set-cookie|authorization|proxy-authorization|x-notion-active-user-header)$",
    flags=re.IGNORECASE,
)

_SENSITIVE_VALUE_RES: list[re.Pattern[str]] = [
    re.compile(r"\btoken_v2=[^;\s]+", flags=re.IGNORECASE),
    re.compile(r"\bX-Amz-(?:Signature|Credential|Security-Token)=[^&\s]+", flags=re.IGNORECASE),
    re.compile(r"\bBearer\s+[A-Za-z0-9._\-]+\b", flags=re.IGNORECASE),
]


def redact_url(url: str | None, *, max_chars: int = 300) -> str:
    """Drop the query string and fragment of ``url``."""
    if not url:
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return redact_text(url, max_chars=max_chars)

    if parts.query:
        out = urlunsplit((parts.scheme, parts.netloc, parts.path, "", "")) + "?" + _REPLACEMENT
    else:
        out = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    if max_chars and len(out) > max_chars:
        out = out[:max_chars] + _TRUNC_SUFFIX
    return out


def redact_text(text: str, *, max_chars: int = 2000) -> str:
    """Redact tokens and signatures inside free text and truncate."""
    out = text or ""
    for rx in _SENSITIVE_VALUE_RES:
        out = rx.sub(_REPLACEMENT, out)
    if max_chars and len(out) > max_chars:
        out = out[:max_chars] + _TRUNC_SUFFIX
    return out


def sanitize_headers(headers: Mapping[str, Any]) -> dict[str, str]:
    """Copy of ``headers`` safe for logging."""
    out: dict[str, str] = {}
    for key, value in headers.items():
        name = str(key)
        if _SECRET_HEADER_RE.match(name):
            out[name] = _REPLACEMENT
        else:
            out[name] = redact_text(str(value), max_chars=500)
    return out
