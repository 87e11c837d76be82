"""비즈니스 로직 서비스 - export only."""

from .impl import ContentSearchService, PreferenceService, SessionStore, build_kv_store

__all__ = ["ContentSearchService", "PreferenceService", "SessionStore", "build_kv_store"]
