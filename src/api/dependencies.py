"""FastAPI 의존성 - 엔진/서비스 싱글톤 구성"""
from typing import Optional

from src.core.config import settings
from src.engine import CircuitBreakerRegistry, ResilienceWrapper, SearchPipeline, TagClassifier, TTLCache
from src.providers import build_default_providers, get_shared_http_client
from src.scheduler.session_sweeper import SessionSweeper
from src.services.impl.content_search_service import ContentSearchService
from src.services.impl.kv_store import KeyValueStore, RedisKeyValueStore, build_kv_store
from src.services.impl.preference_service import PreferenceService
from src.services.impl.session_store import SessionStore

# 싱글톤
_classifier: Optional[TagClassifier] = None
_search_cache: Optional[TTLCache] = None
_breakers: Optional[CircuitBreakerRegistry] = None
_kv_store: Optional[KeyValueStore] = None
_preference_service: Optional[PreferenceService] = None
_session_store: Optional[SessionStore] = None
_search_service: Optional[ContentSearchService] = None
_sweeper: Optional[SessionSweeper] = None


def get_classifier() -> TagClassifier:
    global _classifier
    if _classifier is None:
        _classifier = TagClassifier()
    return _classifier


def get_search_cache() -> TTLCache:
    """검색/자동완성/단건 조회 결과 캐시"""
    global _search_cache
    if _search_cache is None:
        _search_cache = TTLCache(max_size=settings.cache_max_entries, name="search_cache")
    return _search_cache


def get_breaker_registry() -> CircuitBreakerRegistry:
    global _breakers
    if _breakers is None:
        _breakers = CircuitBreakerRegistry()
    return _breakers


def get_kv_store() -> KeyValueStore:
    """설정된 영속 저장소 (memory | redis | database)"""
    global _kv_store
    if _kv_store is None:
        _kv_store = build_kv_store(settings.persistence_backend)
    return _kv_store


def get_preference_service() -> PreferenceService:
    global _preference_service
    if _preference_service is None:
        _preference_service = PreferenceService(get_kv_store(), classifier=get_classifier())
    return _preference_service


def get_session_store() -> SessionStore:
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store


def get_search_service() -> ContentSearchService:
    """ContentSearchService 싱글톤

    Engine Layer의 진입점을 제공합니다.
    """
    global _search_service
    if _search_service is None:
        classifier = get_classifier()
        providers = build_default_providers(get_shared_http_client(), classifier)
        wrapper = ResilienceWrapper(get_search_cache(), get_breaker_registry())
        pipeline = SearchPipeline(providers, wrapper, get_preference_service(), classifier=classifier)
        _search_service = ContentSearchService(pipeline, get_session_store(), get_preference_service())
    return _search_service


def get_session_sweeper() -> SessionSweeper:
    global _sweeper
    if _sweeper is None:
        _sweeper = SessionSweeper(get_session_store(), get_kv_store())
    return _sweeper


async def shutdown_dependencies() -> None:
    """종료 시 외부 연결 정리 후 싱글톤 초기화"""
    global _classifier, _search_cache, _breakers, _kv_store
    global _preference_service, _session_store, _search_service, _sweeper

    if _sweeper is not None:
        _sweeper.shutdown()
    if isinstance(_kv_store, RedisKeyValueStore):
        await _kv_store.close()

    _classifier = None
    _search_cache = None
    _breakers = None
    _kv_store = None
    _preference_service = None
    _session_store = None
    _search_service = None
    _sweeper = None
