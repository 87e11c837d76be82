"""API 엔드포인트 패키지 - export only."""

from .dependencies import get_preference_service, get_search_service
from .routes import health_router, search_router, settings_router

__all__ = ["health_router", "search_router", "settings_router", "get_search_service", "get_preference_service"]
