"""API routes package."""

from .health_routes import router as health_router
from .search_routes import router as search_router
from .settings_routes import router as settings_router

__all__ = ["health_router", "search_router", "settings_router"]
