"""사용자별 탐색 세션 저장소 (프로세스 메모리, 만료 + 크기 제한)"""
import time
from typing import Callable, Optional

from src.core.config import settings
from src.core.exceptions import SessionExpiredException
from src.core.logging import logger
from src.engine.navigator import clamp_cursor, next_known_max_page
from src.engine.ttl_cache import TTLCache
from src.schemas.content_schema import ContentItem, EffectiveSearchOptions, Session, SessionKind

NAMESPACE = "session"


class SessionStore:
    """세션 저장소

    - 사용자당 세션 1개 (새 검색은 기존 세션을 교체)
    - 변경이 확정될 때마다 expires_at = now + ttl 로 갱신
    - 만료된 세션은 조회 시 제거되며 다시 살아나지 않음
    - 최대 개수 초과 시 가장 오래 갱신되지 않은 세션 제거
    """

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        max_entries: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.ttl_seconds = ttl_seconds or settings.session_ttl_seconds
        self._clock = clock or time.monotonic
        self._cache = TTLCache(
            max_size=max_entries or settings.session_max_entries,
            clock=self._clock,
            name="session_store",
        )

    def _commit(self, session: Session) -> Session:
        now = self._clock()
        session = session.model_copy(update={"expires_at": now + self.ttl_seconds})
        self._cache.set(NAMESPACE, session.user_id, session, self.ttl_seconds)
        return session

    def create(
        self,
        user_id: str,
        kind: SessionKind,
        provider: str,
        items: list[ContentItem],
        query: str = "",
        options: Optional[EffectiveSearchOptions] = None,
        page: int = 1,
        has_more: bool = False,
        known_total_pages: Optional[int] = None,
        timeframe: Optional[str] = None,
    ) -> Session:
        """새 세션 생성 (기존 세션 교체)"""
        now = self._clock()
        session = Session(
            user_id=user_id,
            kind=kind,
            provider=provider,
            query=query,
            options=options,
            items=tuple(items),
            cursor=0,
            page=page,
            has_more=has_more,
            known_max_page=next_known_max_page(page, page, has_more, known_total_pages),
            timeframe=timeframe,
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )
        logger.debug(f"Session created: user={user_id} kind={kind.value} items={len(items)}")
        return self._commit(session)

    def get(self, user_id: str) -> Optional[Session]:
        """세션 조회 (없거나 만료되었으면 None)"""
        session = self._cache.get(NAMESPACE, user_id)
        if session is None:
            return None
        if session.is_expired(self._clock()):
            self._cache.delete(NAMESPACE, user_id)
            return None
        return session

    def require(self, user_id: str) -> Session:
        session = self.get(user_id)
        if session is None:
            raise SessionExpiredException(user_id)
        return session

    def update_cursor(self, user_id: str, index: int) -> Session:
        """커서 이동 (범위를 벗어나면 경계로 제한)

        Raises:
            SessionExpiredException: 세션 없음/만료
        """
        session = self.require(user_id)
        cursor = clamp_cursor(index, len(session.items))
        return self._commit(session.model_copy(update={"cursor": cursor}))

    def append_page(
        self,
        user_id: str,
        items: list[ContentItem],
        page: int,
        has_more: bool,
        known_total_pages: Optional[int] = None,
    ) -> Session:
        """새 페이지로 항목 교체 (커서 → 0)

        Raises:
            SessionExpiredException: 세션 없음/만료
            ValueError: 빈 페이지 (세션은 변경하지 않음)
        """
        if not items:
            raise ValueError("page must contain at least one item")
        session = self.require(user_id)
        return self._commit(session.model_copy(update={
            "items": tuple(items),
            "cursor": 0,
            "page": page,
            "has_more": has_more,
            "known_max_page": next_known_max_page(session.known_max_page, page, has_more, known_total_pages),
        }))

    def clear(self, user_id: str) -> bool:
        return self._cache.delete(NAMESPACE, user_id)

    def sweep(self) -> int:
        """만료 세션 일괄 제거"""
        removed = self._cache.purge_expired()
        if removed:
            logger.info(f"Session sweep removed {removed} expired sessions")
        return removed

    def count(self) -> int:
        return len(self._cache)
