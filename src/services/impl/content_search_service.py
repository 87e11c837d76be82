"""콘텐츠 검색 서비스 - 파이프라인 / 세션 / 사용자 데이터 조율

- 검색 계열 명령(search / random / trending / open_post)은 첫 페이지로 세션을 만듭니다.
- 탐색 명령(navigate)은 세션만 읽고 바꾸며, 아직 없는 페이지만 파이프라인으로 가져옵니다.
- 같은 사용자의 업스트림 호출은 가장 마지막 요청만 살아남습니다 (이전 요청은 취소).
"""
import asyncio
import random
from typing import Any, Awaitable, Callable, Optional

from src.core.exceptions import (
    CacheException,
    DatabaseException,
    OwnershipViolationException,
    SessionExpiredException,
)
from src.core.logging import logger, sanitize_for_log
from src.engine.navigator import clamp_page, random_cursor, step_cursor
from src.engine.pipeline import SearchPipeline
from src.engine.result import (
    NavigationAction,
    NavigationResult,
    NavigationStatus,
    SearchOutcome,
    SearchResult,
    SearchStatus,
    SessionView,
)
from src.schemas.content_schema import (
    ContentItem,
    FavoriteEntry,
    HistoryEntry,
    SearchOptions,
    Session,
    SessionKind,
)
from src.services.impl.preference_service import PreferenceService
from src.services.impl.session_store import SessionStore


class ContentSearchService:
    """호출자(API)가 사용하는 단일 진입점

    Usage:
        service = ContentSearchService(pipeline, sessions, preferences)
        outcome = await service.search("user-1", "cat_ears")
        nav = await service.navigate("user-1", "user-1", NavigationAction.NEXT)
    """

    def __init__(
        self,
        pipeline: SearchPipeline,
        sessions: SessionStore,
        preferences: PreferenceService,
        rng: Optional[random.Random] = None,
    ):
        self.pipeline = pipeline
        self.sessions = sessions
        self.preferences = preferences
        self._rng = rng or random.Random()
        self._inflight: dict[str, asyncio.Task] = {}

    # --- 마지막 요청 우선 ---

    async def _run_latest(self, user_id: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """사용자별로 최신 요청만 실행

        새 요청이 들어오면 진행 중인 이전 요청을 취소합니다. 취소된 요청은
        None 을 반환하며 세션을 변경하지 않습니다.
        """
        previous = self._inflight.get(user_id)
        if previous is not None and not previous.done():
            previous.cancel()
            logger.debug(f"Superseded in-flight request for user={user_id}")

        task = asyncio.ensure_future(factory())
        self._inflight[user_id] = task
        try:
            return await task
        except asyncio.CancelledError:
            # 새 요청에 의해 취소된 경우만 흡수, 호출자 자신의 취소는 전파
            if task.cancelled() and self._inflight.get(user_id) is not task:
                return None
            raise
        finally:
            if self._inflight.get(user_id) is task:
                del self._inflight[user_id]

    # --- 세션 생성 명령 ---

    async def search(
        self,
        user_id: str,
        query: str = "",
        options: Optional[SearchOptions] = None,
        provider: Optional[str] = None,
    ) -> SearchOutcome:
        """검색 후 첫 페이지로 세션 생성"""
        result = await self._run_latest(user_id, lambda: self.pipeline.search(user_id, query, options, provider))
        return await self._open_session(user_id, SessionKind.SEARCH, result, query=query)

    async def random(
        self,
        user_id: str,
        query: str = "",
        options: Optional[SearchOptions] = None,
        count: int = 1,
        provider: Optional[str] = None,
    ) -> SearchOutcome:
        result = await self._run_latest(
            user_id, lambda: self.pipeline.random(user_id, query, options, count, provider)
        )
        return await self._open_session(user_id, SessionKind.RANDOM, result, query=query)

    async def trending(
        self,
        user_id: str,
        timeframe: str = "day",
        options: Optional[SearchOptions] = None,
        provider: Optional[str] = None,
    ) -> SearchOutcome:
        result = await self._run_latest(
            user_id, lambda: self.pipeline.trending(user_id, timeframe, options, provider)
        )
        return await self._open_session(user_id, SessionKind.TRENDING, result, timeframe=timeframe)

    async def open_post(self, user_id: str, item_id: str, provider: Optional[str] = None) -> SearchOutcome:
        """id 로 단일 항목 조회 (페이지 이동 없는 세션)"""
        result = await self._run_latest(user_id, lambda: self.pipeline.get_by_id(item_id, provider))
        return await self._open_session(user_id, SessionKind.SINGLE, result, query=item_id)

    async def _open_session(
        self,
        user_id: str,
        kind: SessionKind,
        result: Optional[SearchResult],
        query: str = "",
        timeframe: Optional[str] = None,
    ) -> SearchOutcome:
        if result is None:
            return SearchOutcome(result=SearchResult.superseded(query))
        if not result.is_success:
            # 실패/결과 없음은 기존 세션을 건드리지 않음
            return SearchOutcome(result=result)

        session = self.sessions.create(
            user_id,
            kind,
            result.provider or self.pipeline.default_provider,
            result.items,
            query=query,
            options=result.options,
            page=result.page,
            has_more=result.has_more and kind != SessionKind.SINGLE,
            known_total_pages=result.known_total_pages,
            timeframe=timeframe,
        )
        logger.info(
            f"Session opened: user={user_id} kind={kind.value} query='{sanitize_for_log(query, 60)}' "
            f"items={len(session.items)} status={result.status.value}"
        )
        await self._record_view(user_id, session.current_item)
        return SearchOutcome(result=result, view=SessionView.from_session(session))

    # --- 탐색 ---

    async def navigate(
        self,
        owner_id: str,
        actor_id: str,
        action: NavigationAction,
        target_page: Optional[int] = None,
    ) -> NavigationResult:
        """세션 탐색

        소유자 검사가 가장 먼저 수행되며, 위반 시 세션은 읽지도 바꾸지도 않습니다.
        """
        if owner_id != actor_id:
            logger.warning(f"Ownership violation: actor={actor_id} tried to {action.value} session of owner={owner_id}")
            return NavigationResult.ownership_violation()

        session = self.sessions.get(owner_id)
        if session is None:
            return NavigationResult.expired()

        if action == NavigationAction.CLOSE:
            self.sessions.clear(owner_id)
            return NavigationResult(status=NavigationStatus.CLOSED, message="Session closed.")

        if action.fetches_page:
            return await self._navigate_page(session, action, target_page)

        total = len(session.items)
        if action == NavigationAction.RANDOM:
            if total <= 1:
                return NavigationResult.no_op(session)
            index = random_cursor(total, self._rng)
        else:
            delta = 1 if action == NavigationAction.NEXT else -1
            index = step_cursor(session.cursor, total, delta)
            if index == session.cursor:
                return NavigationResult.no_op(session, "Already at the edge of this page.")

        try:
            session = self.sessions.update_cursor(owner_id, index)
        except SessionExpiredException:
            return NavigationResult.expired()
        await self._record_view(owner_id, session.current_item)
        return NavigationResult.ok(session)

    async def _navigate_page(
        self, session: Session, action: NavigationAction, target_page: Optional[int]
    ) -> NavigationResult:
        if session.kind == SessionKind.SINGLE or session.options is None:
            return NavigationResult.no_op(session, "This result has no other pages.")

        if action == NavigationAction.NEXT_PAGE:
            if not session.has_more and session.kind != SessionKind.RANDOM:
                return NavigationResult.no_op(session, "No more pages.")
            page = session.page + 1
        elif action == NavigationAction.PREV_PAGE:
            if session.page <= 1:
                return NavigationResult.no_op(session, "Already on the first page.")
            page = session.page - 1
        else:
            if target_page is None:
                return NavigationResult.no_op(session, "No target page given.")
            page = clamp_page(target_page, session.known_max_page)
            if page == session.page:
                return NavigationResult.no_op(session)

        user_id = session.user_id
        result = await self._run_latest(
            user_id,
            lambda: self.pipeline.fetch_page(
                session.provider, session.kind, session.options, page,
                timeframe=session.timeframe, count=max(1, len(session.items)),
            ),
        )
        if result is None:
            return NavigationResult.superseded()

        if result.status == SearchStatus.REJECTED:
            return NavigationResult(
                status=NavigationStatus.REJECTED, view=SessionView.from_session(session), message=result.error_message,
            )
        if result.status == SearchStatus.DEGRADED:
            return NavigationResult(
                status=NavigationStatus.DEGRADED, view=SessionView.from_session(session), message=result.error_message,
            )
        if not result.items:
            return NavigationResult.no_op(session, "That page has no results.")

        try:
            updated = self.sessions.append_page(
                user_id, result.items, page, result.has_more, result.known_total_pages,
            )
        except SessionExpiredException:
            return NavigationResult.expired()
        logger.info(f"Session page changed: user={user_id} page={session.page}->{page} items={len(updated.items)}")
        await self._record_view(user_id, updated.current_item)
        return NavigationResult.ok(updated)

    def current_view(self, user_id: str) -> Optional[SessionView]:
        session = self.sessions.get(user_id)
        return SessionView.from_session(session) if session else None

    def close(self, user_id: str) -> bool:
        task = self._inflight.pop(user_id, None)
        if task is not None and not task.done():
            task.cancel()
        return self.sessions.clear(user_id)

    def sweep_sessions(self) -> int:
        return self.sessions.sweep()

    # --- 즐겨찾기 / 기록 ---

    async def toggle_favorite(self, owner_id: str, actor_id: str) -> Optional[bool]:
        """현재 항목 즐겨찾기 토글

        세션 소유자만 토글할 수 있으며, 소유자 검사는 세션 조회보다 먼저 수행됩니다.

        Returns:
            토글 후 상태, 세션이 없으면 None

        Raises:
            OwnershipViolationException: 소유자가 아닌 사용자의 요청
        """
        if owner_id != actor_id:
            logger.warning(f"Ownership violation: actor={actor_id} tried to favorite in session of owner={owner_id}")
            raise OwnershipViolationException(owner_id, actor_id)
        session = self.sessions.get(owner_id)
        if session is None or session.current_item is None:
            return None
        return await self.preferences.toggle_favorite(owner_id, session.current_item)

    async def get_favorites(self, user_id: str) -> list[FavoriteEntry]:
        return await self.preferences.get_favorites(user_id)

    async def get_history(self, user_id: str, limit: Optional[int] = None) -> list[HistoryEntry]:
        return await self.preferences.get_history(user_id, limit)

    async def autocomplete(self, text: str, provider: Optional[str] = None) -> list[dict[str, Any]]:
        return await self.pipeline.autocomplete(text, provider)

    async def _record_view(self, user_id: str, item: Optional[ContentItem]) -> None:
        if item is None:
            return
        try:
            await self.preferences.add_to_history(user_id, item)
        except (CacheException, DatabaseException) as e:
            logger.warning(f"Failed to record history for user={user_id}: {e}")
