"""HTTP routers package."""

from .assets_pdf_router import create_assets_pdf_router
from .file_router import create_file_router
from .health_router import create_health_router
from .record_map_router import create_record_map_router

__all__ = [
    "create_assets_pdf_router",
    "create_file_router",
    "create_health_router",
    "create_record_map_router",
]
