"""TTL Cache - namespaced in-process cache with lazy expiry and FIFO eviction."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from src.core.logging import logger

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


@dataclass
class CacheStats:
    """캐시 통계"""

    size: int = 0
    max_size: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "hit_rate": round(self.hit_rate, 4),
        }


class TTLCache:
    """네임스페이스 단위 TTL 캐시

    - O(1) 조회 (OrderedDict)
    - 만료된 항목은 조회 시점에 제거 (lazy expiry)
    - 최대 크기 도달 시 가장 먼저 삽입된 항목 1개를 제거
    - 기존 키 덮어쓰기는 제거 없이 최신 위치로 이동
    - 실패 결과는 저장하지 않음 (호출자 책임)

    Usage:
        cache = TTLCache(max_size=500)
        cache.set("search", key, value, ttl_seconds=600)
        cache.get("search", key)
    """

    def __init__(self, max_size: int = 500, clock: Optional[Clock] = None, name: str = "ttl_cache"):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.name = name
        self._clock: Clock = clock or time.monotonic
        self._entries: "OrderedDict[tuple[str, str], CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStats(max_size=max_size)

    def get(self, namespace: str, key: str) -> Optional[Any]:
        """값 조회 (없거나 만료되었으면 None)"""
        composite = (namespace, key)
        with self._lock:
            entry = self._entries.get(composite)
            if entry is None:
                self._stats.misses += 1
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[composite]
                self._stats.expirations += 1
                self._stats.misses += 1
                return None
            self._stats.hits += 1
            return entry.value

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: float) -> None:
        """값 저장

        Args:
            namespace: 네임스페이스 (예: "search", "autocomplete")
            key: 캐시 키
            value: 저장할 값
            ttl_seconds: 만료 시간 (초)
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        composite = (namespace, key)
        with self._lock:
            expires_at = self._clock() + ttl_seconds
            if composite in self._entries:
                self._entries[composite] = CacheEntry(value, expires_at)
                self._entries.move_to_end(composite)
                return

            if len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._stats.evictions += 1
                logger.debug(f"[{self.name}] evicted oldest entry {evicted[0]}:{evicted[1]}")

            self._entries[composite] = CacheEntry(value, expires_at)

    def delete(self, namespace: str, key: str) -> bool:
        with self._lock:
            return self._entries.pop((namespace, key), None) is not None

    def clear_namespace(self, namespace: str) -> int:
        """네임스페이스 전체 삭제 (삭제된 개수 반환)"""
        with self._lock:
            doomed = [k for k in self._entries if k[0] == namespace]
            for k in doomed:
                del self._entries[k]
        if doomed:
            logger.info(f"[{self.name}] cleared namespace '{namespace}' ({len(doomed)} entries)")
        return len(doomed)

    def keys(self, namespace: str) -> list[str]:
        """네임스페이스의 유효한 키 목록 (삽입 순서)"""
        now = self._clock()
        with self._lock:
            return [k[1] for k, e in self._entries.items() if k[0] == namespace and now < e.expires_at]

    def purge_expired(self) -> int:
        """만료 항목 일괄 정리"""
        now = self._clock()
        with self._lock:
            doomed = [k for k, e in self._entries.items() if now >= e.expires_at]
            for k in doomed:
                del self._entries[k]
            self._stats.expirations += len(doomed)
        return len(doomed)

    def stats(self) -> CacheStats:
        with self._lock:
            self._stats.size = len(self._entries)
            return CacheStats(**vars(self._stats))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    async def get_or_set(
        self,
        namespace: str,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl_seconds: float,
    ) -> Any:
        """Cache-aside 헬퍼: 미스일 때만 factory 실행 후 저장

        factory가 예외를 던지면 아무것도 저장하지 않습니다.
        """
        cached = self.get(namespace, key)
        if cached is not None:
            return cached

        value = await factory()
        if value is not None:
            self.set(namespace, key, value, ttl_seconds)
        return value
