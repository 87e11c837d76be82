"""영속 KV 저장소 - 네임스페이스 get/set/delete (memory | redis | database)"""
import asyncio
import json
from typing import Any, Callable, Optional, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.config import settings
from src.core.database import SessionLocal
from src.core.exceptions import CacheConnectionException, CacheSerializationException
from src.core.logging import logger
from src.engine.ttl_cache import TTLCache
from src.repositories.impl.kv_entry_repository import KvEntryRepository

# ttl 미지정 값의 메모리 보관 기간 (사실상 만료 없음)
NO_EXPIRY_SECONDS = 10 * 365 * 24 * 3600


def _dumps(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise CacheSerializationException("serialize", str(e))


def _loads(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise CacheSerializationException("deserialize", str(e))


class KeyValueStore(Protocol):
    """영속 저장소 인터페이스 (키 단위 변경만, 다중 키 트랜잭션 없음)"""

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        ...

    async def set(self, namespace: str, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ...

    async def delete(self, namespace: str, key: str) -> bool:
        ...

    async def health_check(self) -> bool:
        ...


class MemoryKeyValueStore:
    """프로세스 메모리 저장소 (네임스페이스별 TTLCache, 재시작 시 소멸)

    네임스페이스마다 별도의 크기 제한을 두어, 조회 기록처럼 자주 쓰이는
    네임스페이스가 차단 목록/설정 항목을 밀어내지 않습니다.
    """

    backend = "memory"

    def __init__(self, max_entries_per_namespace: Optional[int] = None, clock: Optional[Callable[[], float]] = None):
        if max_entries_per_namespace is None:
            max_entries_per_namespace = settings.memory_store_max_entries
        self.max_entries_per_namespace = max_entries_per_namespace
        self._clock = clock
        self._caches: dict[str, TTLCache] = {}

    def cache_for(self, namespace: str) -> TTLCache:
        cache = self._caches.get(namespace)
        if cache is None:
            cache = TTLCache(
                max_size=self.max_entries_per_namespace, clock=self._clock, name=f"kv_memory:{namespace}"
            )
            self._caches[namespace] = cache
        return cache

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        raw = self.cache_for(namespace).get(namespace, key)
        return None if raw is None else _loads(raw)

    async def set(self, namespace: str, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        # JSON 문자열로 보관해 호출자와 객체를 공유하지 않음
        self.cache_for(namespace).set(namespace, key, _dumps(value), ttl_seconds or NO_EXPIRY_SECONDS)

    async def delete(self, namespace: str, key: str) -> bool:
        return self.cache_for(namespace).delete(namespace, key)

    async def health_check(self) -> bool:
        return True


class RedisKeyValueStore:
    """Redis 저장소"""

    backend = "redis"

    def __init__(self, client: Optional[Redis] = None):
        self.redis_client = client or Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

    @staticmethod
    def _key(namespace: str, key: str) -> str:
        return f"{namespace}:{key}"

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        redis_key = self._key(namespace, key)
        try:
            cached = await self.redis_client.get(redis_key)
        except RedisError as e:
            logger.error(f"Redis read error: {e}")
            raise CacheConnectionException(str(e), details={"key": redis_key})
        if cached is None:
            return None
        return _loads(cached)

    async def set(self, namespace: str, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        redis_key = self._key(namespace, key)
        payload = _dumps(value)
        try:
            if ttl_seconds:
                await self.redis_client.setex(redis_key, ttl_seconds, payload)
            else:
                await self.redis_client.set(redis_key, payload)
        except RedisError as e:
            logger.error(f"Redis write error: {e}")
            raise CacheConnectionException(str(e), details={"key": redis_key})
        logger.debug(f"Redis set for key: {redis_key}, TTL: {ttl_seconds}")

    async def delete(self, namespace: str, key: str) -> bool:
        try:
            return (await self.redis_client.delete(self._key(namespace, key))) > 0
        except RedisError as e:
            logger.error(f"Redis delete error: {e}")
            raise CacheConnectionException(str(e))

    async def health_check(self) -> bool:
        try:
            return bool(await self.redis_client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self.redis_client.aclose()


class SqlKeyValueStore:
    """SQL 데이터베이스 저장소 (동기 SQLAlchemy 세션을 스레드에서 실행)"""

    backend = "database"

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory or SessionLocal

    def _run(self, fn: Callable[[KvEntryRepository], Any]) -> Any:
        with self._session_factory() as db:
            return fn(KvEntryRepository(db))

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._run, lambda repo: repo.get(namespace, key))

    async def set(self, namespace: str, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        _dumps(value)
        await asyncio.to_thread(self._run, lambda repo: repo.upsert(namespace, key, value, ttl_seconds))

    async def delete(self, namespace: str, key: str) -> bool:
        return await asyncio.to_thread(self._run, lambda repo: repo.delete(namespace, key))

    async def purge_expired(self) -> int:
        return await asyncio.to_thread(self._run, lambda repo: repo.purge_expired())

    def _ping(self) -> bool:
        with self._session_factory() as db:
            db.execute(text("SELECT 1"))
        return True

    async def health_check(self) -> bool:
        try:
            return await asyncio.to_thread(self._ping)
        except SQLAlchemyError:
            return False


def build_kv_store(backend: Optional[str] = None) -> KeyValueStore:
    """설정된 백엔드로 저장소 생성"""
    backend = (backend or settings.persistence_backend).lower()
    if backend == "redis":
        logger.info("Persistence backend: redis")
        return RedisKeyValueStore()
    if backend == "database":
        logger.info("Persistence backend: database")
        return SqlKeyValueStore()
    logger.info("Persistence backend: memory")
    return MemoryKeyValueStore()
