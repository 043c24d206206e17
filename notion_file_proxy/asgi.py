"""ASGI entry point for uvicorn with hot reload support.

Usage:
    uvicorn notion_file_proxy.asgi:app --reload --host 0.0.0.0 --port 3000
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from notion_file_proxy import __version__
from notion_file_proxy.config import ProxyConfig
from notion_file_proxy.logging_filters import (
    configure_logging,
    install_uvicorn_access_log_filters,
)
from notion_file_proxy.main import Application


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the application on startup and close its clients on shutdown."""
    config = ProxyConfig.from_json_file()
    configure_logging(config.log_level)
    install_uvicorn_access_log_filters()

    application = Application(config)
    await application.setup()
    # Routers close over this startup's clients, so a repeated startup swaps
    # out the previous set instead of adding a second one.
    if not hasattr(fastapi_app.state, "base_routes"):
        fastapi_app.state.base_routes = list(fastapi_app.router.routes)
    fastapi_app.router.routes[:] = fastapi_app.state.base_routes
    fastapi_app.openapi_schema = None
    application.register_routes(fastapi_app)
    fastapi_app.state.application = application

    yield

    await application.shutdown()


app = FastAPI(
    title="Notion File Proxy",
    description="Stable links and streaming proxy for Notion-hosted files",
    version=__version__,
    lifespan=lifespan,
)
