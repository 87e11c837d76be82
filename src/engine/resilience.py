"""Resilience Wrapper - Cache-aside + Circuit Breaker around upstream calls

Coordinates one upstream call:
1. Cache lookup (hit bypasses the breaker)
2. Breaker-guarded attempt with bounded timeout
3. Fallback on failure / open circuit
4. Cache write on success only
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from src.core.exceptions import (
    CircuitOpenException,
    UpstreamFailureException,
    UpstreamRejectedException,
)
from src.core.logging import logger

from .circuit_breaker import CircuitBreakerRegistry
from .strategy import ExecutionSource, ExecutionStrategy
from .ttl_cache import TTLCache


class _Missing:
    def __repr__(self) -> str:
        return "<no fallback>"


MISSING: Any = _Missing()


@dataclass
class ExecutionResult:
    """ResilienceWrapper.execute 결과

    Attributes:
        value: 결과 값 (fallback 사용 시 fallback 값)
        source: 출처 (cache | upstream | fallback)
        degraded: fallback 으로 대체되었는지 여부
        error: 흡수된 오류 (degraded 일 때)
    """

    value: Any
    source: ExecutionSource
    degraded: bool = False
    error: Optional[BaseException] = None

    @property
    def from_cache(self) -> bool:
        return self.source == ExecutionSource.CACHE


def namespace_of(cache_key: str) -> str:
    """캐시 키의 첫 구간을 네임스페이스로 사용 ("search:rule34:..." → "search")"""
    return cache_key.split(":", 1)[0] if ":" in cache_key else "default"


class ResilienceWrapper:
    """업스트림 호출 보호 래퍼

    Usage:
        wrapper = ResilienceWrapper(cache, registry)
        result = await wrapper.execute(
            "rule34", lambda: provider.fetch(query),
            cache_key="search:rule34:<md5>", ttl=600, fallback=[],
        )
    """

    def __init__(
        self,
        cache: TTLCache,
        registry: Optional[CircuitBreakerRegistry] = None,
        strategy: Optional[ExecutionStrategy] = None,
    ):
        if cache is None:
            raise ValueError("cache must not be None")
        self.cache = cache
        self.registry = registry or CircuitBreakerRegistry()
        self.strategy = strategy or ExecutionStrategy()

    async def execute(
        self,
        provider_name: str,
        operation: Callable[[], Awaitable[Any]],
        cache_key: Optional[str] = None,
        ttl: Optional[float] = None,
        fallback: Any = MISSING,
    ) -> ExecutionResult:
        """보호된 업스트림 호출 실행

        Args:
            provider_name: 프로바이더 이름 (회로차단 단위)
            operation: 인자 없는 비동기 호출
            cache_key: 캐시 키 (None 이면 캐시 미사용)
            ttl: 성공 결과 캐시 TTL (초)
            fallback: 실패/회로개방 시 반환할 값 (미지정 시 예외 전파)

        Returns:
            ExecutionResult

        Raises:
            UpstreamRejectedException: 업스트림 4xx 거절 (항상 전파)
            CircuitOpenException: 회로 개방 + fallback 미지정
            UpstreamFailureException: 실패 + fallback 미지정
        """
        # 1. Cache 확인 (히트 시 회로 상태와 무관하게 즉시 반환)
        if cache_key:
            cached = self._try_cache(cache_key)
            if cached is not None:
                return ExecutionResult(value=cached, source=ExecutionSource.CACHE)

        breaker = self.registry.get(provider_name)

        # 2. 보호된 호출
        try:
            value = await breaker.call(operation)
        except UpstreamRejectedException as e:
            logger.info(f"[RESILIENCE] {provider_name}: query rejected ({e.status_code})")
            raise
        except CircuitOpenException as e:
            if fallback is MISSING:
                raise
            breaker.metrics.fallbacks += 1
            logger.warning(
                f"[RESILIENCE] {provider_name}: circuit open, serving fallback "
                f"(retry in {e.retry_after_s:.1f}s)"
            )
            return ExecutionResult(value=fallback, source=ExecutionSource.FALLBACK, degraded=True, error=e)
        except Exception as e:
            if not self.strategy.should_absorb(e):
                raise
            logger.warning(f"[RESILIENCE] {provider_name}: upstream failed: {type(e).__name__}: {e}")
            if fallback is MISSING:
                if isinstance(e, UpstreamFailureException):
                    raise
                raise UpstreamFailureException(provider_name, f"{type(e).__name__}: {e}") from e
            breaker.metrics.fallbacks += 1
            return ExecutionResult(value=fallback, source=ExecutionSource.FALLBACK, degraded=True, error=e)

        # 3. 성공 결과만 캐시
        if cache_key and value is not None and ttl:
            self.cache.set(namespace_of(cache_key), cache_key, value, ttl)

        return ExecutionResult(value=value, source=ExecutionSource.UPSTREAM)

    def _try_cache(self, cache_key: str) -> Optional[Any]:
        cached = self.cache.get(namespace_of(cache_key), cache_key)
        if cached is not None:
            logger.debug(f"Cache hit: key='{cache_key}'")
        return cached

    def invalidate(self, cache_key: str) -> bool:
        return self.cache.delete(namespace_of(cache_key), cache_key)
