"""Request/response models and the record-map shape.

A record map is owned by Notion and only ever handled as a plain mapping:
``block`` maps block ids to ``{"value": {...}}`` entries and ``signed_urls``
maps block ids to the currently signed URL of that block's file.
"""

from typing import Any

from pydantic import Field

from notion_file_proxy.enums import RewriteVariant
from notion_file_proxy.models.base import JsonModel

RecordMap = dict[str, Any]


class RewriteRecordMapRequest(JsonModel):
    """Body of ``POST /api/record-map/rewrite``."""

    page_id: str = Field(min_length=1)
    record_map: RecordMap
    variant: RewriteVariant = RewriteVariant.FILE


class RewriteRecordMapResponse(JsonModel):
    """Rewritten record map plus the number of entries that now point locally."""

    page_id: str
    record_map: RecordMap
    rewritten: int


class HealthResponse(JsonModel):
    status: str
    version: str
