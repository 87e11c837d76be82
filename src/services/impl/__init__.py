"""Services implementation package."""

from .content_search_service import ContentSearchService
from .kv_store import (
    KeyValueStore,
    MemoryKeyValueStore,
    RedisKeyValueStore,
    SqlKeyValueStore,
    build_kv_store,
)
from .preference_service import PreferenceService
from .session_store import SessionStore

__all__ = [
    "ContentSearchService",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "RedisKeyValueStore",
    "SqlKeyValueStore",
    "build_kv_store",
    "PreferenceService",
    "SessionStore",
]
