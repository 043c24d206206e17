"""StrEnum definitions for type-safe constants."""

from enum import StrEnum


class BlockType(StrEnum):
    """Notion block types that carry uploaded files."""

    PDF = "pdf"
    FILE = "file"
    AUDIO = "audio"
    VIDEO = "video"
    IMAGE = "image"


class RewriteVariant(StrEnum):
    """Record-map rewrite presets."""

    FILE = "file"
    PDF = "pdf"


class UrlSource(StrEnum):
    """Where a resolved upstream URL came from."""

    SIGNED = "signed"
    RAW = "raw"
    RAW_UNSIGNED = "raw_unsigned"


class ResolutionStep(StrEnum):
    """States of the per-request URL resolution machine."""

    FETCH_SIGNED = "fetch_signed"
    USE_SIGNED = "use_signed"
    FALLBACK_RAW = "fallback_raw"
    FETCH_UNSIGNED = "fetch_unsigned"
    FAIL = "fail"
