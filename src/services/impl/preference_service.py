"""사용자 설정 / 차단 목록 / 즐겨찾기 / 조회 기록 서비스"""
import time
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import ValidationError

from src.core.config import settings
from src.core.exceptions import InvalidQueryException
from src.core.logging import logger
from src.engine.classifier import TagClassifier
from src.schemas.content_schema import (
    ContentItem,
    FavoriteEntry,
    HistoryEntry,
    Preferences,
    PreferencesUpdate,
)
from src.services.impl.kv_store import KeyValueStore

NS_PREFERENCES = "preferences"
NS_BLACKLIST = "blacklist"
NS_FAVORITES = "favorites"
NS_HISTORY = "history"


class PreferenceService:
    """사용자별 영속 데이터 관리

    모든 변경은 사용자 키 단위이며 (다중 키 트랜잭션 없음)
    같은 키에 대한 동시 쓰기는 마지막 쓰기가 남습니다.
    """

    def __init__(
        self,
        store: KeyValueStore,
        classifier: Optional[TagClassifier] = None,
        favorites_max: Optional[int] = None,
        history_max: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.store = store
        self.classifier = classifier or TagClassifier()
        self.favorites_max = favorites_max or settings.favorites_max
        self.history_max = history_max or settings.history_max
        self._clock = clock or time.time

    # --- 설정 ---

    async def get_preferences(self, user_id: str) -> Preferences:
        data = await self.store.get(NS_PREFERENCES, user_id)
        if not data:
            return Preferences(user_id=user_id)
        try:
            return Preferences(**{**data, "user_id": user_id})
        except ValidationError as e:
            logger.warning(f"Stored preferences invalid for user={user_id}, using defaults: {e.error_count()} errors")
            return Preferences(user_id=user_id)

    async def set_preferences(
        self, user_id: str, update: Union[PreferencesUpdate, dict[str, Any]]
    ) -> Preferences:
        """부분 갱신 후 저장

        Raises:
            InvalidQueryException: 값 검증 실패
        """
        try:
            if isinstance(update, dict):
                update = PreferencesUpdate(**update)
            changes = update.model_dump(exclude_unset=True)
            current = await self.get_preferences(user_id)
            merged = Preferences(**{**current.model_dump(), **changes, "user_id": user_id})
        except ValidationError as e:
            raise InvalidQueryException("invalid preferences", details={"errors": e.errors(include_url=False)})

        await self.store.set(
            NS_PREFERENCES, user_id, merged.model_dump(mode="json"), settings.user_data_ttl_seconds
        )
        logger.info(f"Preferences updated: user={user_id} fields={sorted(changes)}")
        return merged

    async def reset_preferences(self, user_id: str) -> Preferences:
        await self.store.delete(NS_PREFERENCES, user_id)
        return Preferences(user_id=user_id)

    # --- 차단 목록 ---

    async def get_blacklist(self, user_id: str) -> set[str]:
        data = await self.store.get(NS_BLACKLIST, user_id)
        return set(data or [])

    async def _save_blacklist(self, user_id: str, tags: set[str]) -> None:
        if tags:
            await self.store.set(NS_BLACKLIST, user_id, sorted(tags), settings.user_data_ttl_seconds)
        else:
            await self.store.delete(NS_BLACKLIST, user_id)

    async def add_to_blacklist(self, user_id: str, tags: Iterable[str]) -> list[str]:
        """태그 추가 (이미 있는 태그는 무시) → 실제로 추가된 태그"""
        current = await self.get_blacklist(user_id)
        added = [t for t in self.classifier.normalize_tags(tags) if t not in current]
        if added:
            await self._save_blacklist(user_id, current | set(added))
        return added

    async def remove_from_blacklist(self, user_id: str, tags: Iterable[str]) -> list[str]:
        """태그 제거 (없는 태그는 무시) → 실제로 제거된 태그"""
        current = await self.get_blacklist(user_id)
        removed = [t for t in self.classifier.normalize_tags(tags) if t in current]
        if removed:
            await self._save_blacklist(user_id, current - set(removed))
        return removed

    async def clear_blacklist(self, user_id: str) -> int:
        current = await self.get_blacklist(user_id)
        if current:
            await self.store.delete(NS_BLACKLIST, user_id)
        return len(current)

    def blacklist_suggestions(self) -> list[str]:
        return self.classifier.blacklist_suggestions()

    # --- 즐겨찾기 ---

    async def get_favorites(self, user_id: str) -> list[FavoriteEntry]:
        data = await self.store.get(NS_FAVORITES, user_id) or []
        return [FavoriteEntry(**entry) for entry in data]

    async def _save_favorites(self, user_id: str, entries: list[FavoriteEntry]) -> None:
        payload = [e.model_dump(mode="json") for e in entries[: self.favorites_max]]
        await self.store.set(NS_FAVORITES, user_id, payload, settings.user_data_ttl_seconds)

    async def is_favorited(self, user_id: str, item_id: str) -> bool:
        return any(f.id == item_id for f in await self.get_favorites(user_id))

    async def add_favorite(self, user_id: str, item: ContentItem) -> bool:
        """즐겨찾기 추가 (최신이 앞, 최대 개수 초과분은 뒤에서 제거) → 추가 여부"""
        favorites = await self.get_favorites(user_id)
        if any(f.id == item.id for f in favorites):
            return False
        entry = FavoriteEntry(
            id=item.id, provider=item.provider, score=item.score, rating=item.rating, added_at=self._clock()
        )
        await self._save_favorites(user_id, [entry] + favorites)
        return True

    async def remove_favorite(self, user_id: str, item_id: str) -> bool:
        favorites = await self.get_favorites(user_id)
        remaining = [f for f in favorites if f.id != item_id]
        if len(remaining) == len(favorites):
            return False
        await self._save_favorites(user_id, remaining)
        return True

    async def toggle_favorite(self, user_id: str, item: ContentItem) -> bool:
        """즐겨찾기 토글 → 토글 후 즐겨찾기 상태"""
        if await self.remove_favorite(user_id, item.id):
            return False
        await self.add_favorite(user_id, item)
        return True

    # --- 조회 기록 ---

    async def get_history(self, user_id: str, limit: Optional[int] = None) -> list[HistoryEntry]:
        data = await self.store.get(NS_HISTORY, user_id) or []
        entries = [HistoryEntry(**entry) for entry in data]
        return entries[:limit] if limit else entries

    async def add_to_history(self, user_id: str, item: ContentItem) -> None:
        """조회 기록 추가 (같은 id 는 최신 위치로 이동)"""
        history = [h for h in await self.get_history(user_id) if h.id != item.id]
        entry = HistoryEntry(id=item.id, provider=item.provider, score=item.score, viewed_at=self._clock())
        payload = [e.model_dump(mode="json") for e in ([entry] + history)[: self.history_max]]
        await self.store.set(NS_HISTORY, user_id, payload, settings.history_ttl_seconds)

    async def clear_history(self, user_id: str) -> int:
        history = await self.get_history(user_id)
        if history:
            await self.store.delete(NS_HISTORY, user_id)
        return len(history)
