"""Application entry point and bootstrap.

Builds the HTTP clients, the Notion client and both URL resolvers once at
process start and hands them to the router factories. Nothing is shared
between requests beyond that immutable wiring.
"""

import logging

import httpx
from fastapi import FastAPI

from notion_file_proxy import __version__
from notion_file_proxy.config import ProxyConfig
from notion_file_proxy.logging_filters import (
    configure_logging,
    install_uvicorn_access_log_filters,
)
from notion_file_proxy.observability.error_log_file import setup_error_log_file
from notion_file_proxy.routers import (
    create_assets_pdf_router,
    create_file_router,
    create_health_router,
    create_record_map_router,
)
from notion_file_proxy.security.host_allowlist import allowed_host_request_hook
from notion_file_proxy.services.notion_client import NotionClient
from notion_file_proxy.services.url_resolver import FileUrlResolver

logger = logging.getLogger(__name__)


class Application:
    """Main application container.

    Owns every long-lived component and closes the HTTP clients on shutdown.
    """

    def __init__(self, config: ProxyConfig) -> None:
        self.config = config

        self.notion_http_client: httpx.AsyncClient | None = None
        self.files_http_client: httpx.AsyncClient | None = None
        self.notion_client: NotionClient | None = None

        # Redirect endpoint gives up when a signed fetch has no URL for the
        # block; the streaming proxy re-fetches unsigned once more.
        self.redirect_resolver: FileUrlResolver | None = None
        self.stream_resolver: FileUrlResolver | None = None

        self.fastapi_app: FastAPI | None = None

    async def setup(self) -> None:
        """Create clients and resolvers."""
        logger.info("Setting up application components...")
        setup_error_log_file(self.config)

        timeout = httpx.Timeout(self.config.upstream_timeout_seconds)
        self.notion_http_client = httpx.AsyncClient(timeout=timeout)
        self.files_http_client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            event_hooks={"request": [allowed_host_request_hook(self.config.allowed_hosts)]},
        )

        self.notion_client = NotionClient(
            self.notion_http_client,
            api_base_url=self.config.notion_api_base_url,
            auth_token=self.config.notion_token,
            active_user=self.config.notion_active_user,
        )
        if not self.notion_client.authenticated:
            logger.warning(
                "NOTION_TOKEN is not set: file URLs cannot be re-signed and "
                "private workspaces will fall back to raw URLs"
            )

        self.redirect_resolver = FileUrlResolver(
            self.notion_client, refetch_unsigned_on_miss=False
        )
        self.stream_resolver = FileUrlResolver(
            self.notion_client, refetch_unsigned_on_miss=True
        )
        logger.info("Application setup complete (Notion API: %s)", self.notion_client.api_base_url)

    def register_routes(self, app: FastAPI) -> None:
        """Attach all routers to ``app``. Requires :meth:`setup`."""
        if (
            self.notion_client is None
            or self.files_http_client is None
            or self.redirect_resolver is None
            or self.stream_resolver is None
        ):
            raise RuntimeError("Application.setup() must run before register_routes()")

        allowed_hosts = self.config.allowed_hosts

        app.include_router(create_health_router())
        app.include_router(
            create_file_router(
                self.redirect_resolver,
                allowed_hosts=allowed_hosts,
                cache_control=self.config.redirect_cache_control,
            )
        )
        app.include_router(
            create_assets_pdf_router(
                self.stream_resolver,
                self.files_http_client,
                allowed_hosts=allowed_hosts,
                cache_control=self.config.stream_cache_control,
            )
        )
        if self.config.record_map_api_enabled:
            app.include_router(
                create_record_map_router(self.notion_client, allowed_hosts=allowed_hosts)
            )

    def create_fastapi_app(self) -> FastAPI:
        self.fastapi_app = FastAPI(
            title="Notion File Proxy",
            description="Stable links and streaming proxy for Notion-hosted files",
            version=__version__,
        )
        self.register_routes(self.fastapi_app)
        return self.fastapi_app

    async def shutdown(self) -> None:
        logger.info("Shutting down...")
        for client in (self.files_http_client, self.notion_http_client):
            if client is not None:
                await client.aclose()
        self.files_http_client = None
        self.notion_http_client = None
        logger.info("HTTP clients closed")


async def create_app(config: ProxyConfig | None = None) -> Application:
    """Create and set up the application.

    Args:
        config: Optional configuration. If not provided, loads from
            config.json/secrets.yml with environment variable overrides.
    """
    if config is None:
        config = ProxyConfig.from_json_file()

    application = Application(config)
    await application.setup()
    application.create_fastapi_app()
    return application


async def main(reload: bool = False) -> None:
    """Run the proxy under uvicorn until interrupted."""
    import uvicorn

    config = ProxyConfig.from_json_file()
    configure_logging(config.log_level)
    logger.info("Starting Notion file proxy...")

    application = await create_app(config)
    try:
        uvicorn_config = uvicorn.Config(
            application.fastapi_app,
            host=config.api_host,
            port=config.api_port,
            log_level=config.log_level.lower(),
            reload=reload,
        )
        # Load uvicorn's logging config first so the filters are not replaced.
        uvicorn_config.load()
        install_uvicorn_access_log_filters()

        logger.info(
            "Proxy running. API available at http://%s:%d", config.api_host, config.api_port
        )
        await uvicorn.Server(uvicorn_config).serve()
    except Exception as e:
        logger.exception("Application error: %s", e)
        raise
    finally:
        await application.shutdown()


if __name__ == "__main__":
    from notion_file_proxy.cli import run

    run()
