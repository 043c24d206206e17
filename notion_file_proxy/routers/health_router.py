"""Liveness endpoint."""

from fastapi import APIRouter

from notion_file_proxy import __version__
from notion_file_proxy.models.domain import HealthResponse


def create_health_router() -> APIRouter:
    router = APIRouter(tags=["health"])

    @router.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        # Upstream is contacted per request only; nothing else to probe.
        return HealthResponse(status="healthy", version=__version__)

    return router
