"""Pydantic models for the HTTP surface."""

from notion_file_proxy.models.base import JsonModel
from notion_file_proxy.models.domain import (
    HealthResponse,
    RecordMap,
    RewriteRecordMapRequest,
    RewriteRecordMapResponse,
)

__all__ = [
    "HealthResponse",
    "JsonModel",
    "RecordMap",
    "RewriteRecordMapRequest",
    "RewriteRecordMapResponse",
]
