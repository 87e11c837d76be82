"""헬스 체크 엔드포인트"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from src import __version__
from src.api.dependencies import get_breaker_registry, get_kv_store, get_search_cache, get_session_store
from src.core.config import settings
from src.core.exceptions import CacheException, DatabaseException
from src.core.logging import logger
from src.engine.circuit_breaker import CircuitBreakerRegistry
from src.engine.ttl_cache import TTLCache
from src.schemas.api_schema import HealthResponse
from src.services.impl.kv_store import KeyValueStore
from src.services.impl.session_store import SessionStore

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    kv_store: KeyValueStore = Depends(get_kv_store),
    breakers: CircuitBreakerRegistry = Depends(get_breaker_registry),
    cache: TTLCache = Depends(get_search_cache),
    sessions: SessionStore = Depends(get_session_store),
):
    """
    헬스 체크 엔드포인트

    - 영속 저장소 연결 상태
    - 프로바이더별 회로차단 상태
    - 결과 캐시 통계
    """
    try:
        persistence_ok = await kv_store.health_check()
    except (CacheException, DatabaseException) as e:
        logger.warning(f"Persistence health check failed: {e.error_code}")
        persistence_ok = False

    snapshot = breakers.snapshot()
    open_circuits = [name for name, info in snapshot.items() if info.get("state") != "closed"]

    if not persistence_ok:
        status = "error"
    elif open_circuits:
        status = "degraded"
    else:
        status = "ok"

    return HealthResponse(
        status=status,
        timestamp=datetime.now(),
        version=__version__,
        persistence_backend=settings.persistence_backend,
        persistence_ok=persistence_ok,
        active_sessions=sessions.count(),
        breakers=snapshot,
        cache=cache.stats().to_dict(),
    )


@router.get("/health/breakers")
async def breaker_status(breakers: CircuitBreakerRegistry = Depends(get_breaker_registry)):
    """프로바이더별 회로차단 상태/지표"""
    return breakers.snapshot()


@router.post("/health/breakers/{name}/reset")
async def reset_breaker(name: str, breakers: CircuitBreakerRegistry = Depends(get_breaker_registry)):
    """회로 수동 복구 (운영용)"""
    if name not in breakers.names():
        raise HTTPException(status_code=404, detail=f"Unknown breaker: {name}")
    breaker = breakers.get(name)
    breaker.reset()
    logger.info(f"[API] Breaker manually reset: {name}")
    return breaker.to_dict()


@router.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "service": settings.api_title,
        "version": __version__,
        "docs": "/docs",
    }
