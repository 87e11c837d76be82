"""Query/Filter Pipeline - Main Engine Entry Point

Coordinates one search:
1. Merge caller options over user Preferences (+ Blacklist)
2. Build provider query
3. Fetch through ResilienceWrapper (cache-aside + circuit breaker)
4. Parse / classify raw items
5. Re-apply filters locally and sort
"""

import random
import time
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from src.core.config import settings
from src.core.exceptions import InvalidQueryException, UnknownProviderException, UpstreamRejectedException
from src.core.logging import logger, sanitize_for_log
from src.providers.base import ContentProvider, ProviderPage, ProviderQuery
from src.schemas.content_schema import (
    ContentItem,
    EffectiveSearchOptions,
    Preferences,
    SearchOptions,
    SessionKind,
)
from src.utils.hash_utils import generate_cache_key

from .classifier import TagClassifier
from .filters import ContentFilter
from .resilience import ResilienceWrapper
from .result import SearchResult

TRENDING_SCORE_FLOORS = {"day": 50, "week": 100, "month": 200}
RANDOM_PAGE_RANGE = (1, 10)
MIN_AUTOCOMPLETE_LENGTH = 2


class PreferenceSource(Protocol):
    """파이프라인이 읽는 사용자 설정 저장소"""

    async def get_preferences(self, user_id: str) -> Preferences:
        ...

    async def get_blacklist(self, user_id: str) -> set[str]:
        ...


class SearchPipeline:
    """검색 파이프라인

    Usage:
        pipeline = SearchPipeline(providers, wrapper, preference_service)
        result = await pipeline.search("user-1", "cat_ears", SearchOptions(min_score=100))
    """

    def __init__(
        self,
        providers: dict[str, ContentProvider],
        wrapper: ResilienceWrapper,
        preferences: PreferenceSource,
        classifier: Optional[TagClassifier] = None,
        content_filter: Optional[ContentFilter] = None,
        default_provider: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ):
        if not providers:
            raise ValueError("providers must not be empty")
        self.providers = providers
        self.wrapper = wrapper
        self.preferences = preferences
        self.classifier = classifier or TagClassifier()
        self._rng = rng or random.Random()
        self.filter = content_filter or ContentFilter(self.classifier, rng=self._rng)
        self.default_provider = default_provider or settings.default_provider

    def get_provider(self, name: Optional[str] = None) -> ContentProvider:
        provider = self.providers.get(name or self.default_provider)
        if provider is None:
            raise UnknownProviderException(name or self.default_provider)
        return provider

    async def merge_options(
        self, user_id: str, query: str = "", options: Optional[SearchOptions] = None
    ) -> EffectiveSearchOptions:
        """호출자 옵션 > 사용자 설정 > 기본값 순으로 병합

        Raises:
            InvalidQueryException: 옵션 조합이 모순될 때
        """
        options = options or SearchOptions()
        prefs = await self.preferences.get_preferences(user_id)
        blacklist = await self.preferences.get_blacklist(user_id)

        if options.min_width and options.max_width and options.min_width > options.max_width:
            raise InvalidQueryException("min_width is greater than max_width")
        if options.min_height and options.max_height and options.min_height > options.max_height:
            raise InvalidQueryException("min_height is greater than max_height")

        requested_excludes = self.classifier.normalize_tags(options.exclude_tags)
        require_tags = self.classifier.normalize_tags(options.require_tags)
        conflict = set(requested_excludes) & set(require_tags)
        if conflict:
            raise InvalidQueryException(f"tags both required and excluded: {', '.join(sorted(conflict))}")

        exclude_tags = requested_excludes + tuple(sorted(set(blacklist) - set(requested_excludes)))

        def pick(value: Any, fallback: Any) -> Any:
            return fallback if value is None else value

        return EffectiveSearchOptions(
            query=(query or "").strip(),
            rating=pick(options.rating, prefs.default_rating),
            exclude_ai=pick(options.exclude_ai, prefs.ai_filter),
            min_score=pick(options.min_score, prefs.min_score),
            min_width=options.min_width or 0,
            max_width=options.max_width or 0,
            min_height=options.min_height or 0,
            max_height=options.max_height or 0,
            content_type=options.content_type,
            exclude_tags=exclude_tags,
            require_tags=require_tags,
            sort=pick(options.sort, prefs.default_sort),
            page=options.page or 1,
            limit=pick(options.limit, prefs.results_per_page),
            high_quality_only=pick(options.high_quality_only, prefs.high_quality_only),
            exclude_low_quality=pick(options.exclude_low_quality, prefs.exclude_low_quality),
        )

    async def search(
        self,
        user_id: str,
        query: str = "",
        options: Optional[SearchOptions] = None,
        provider: Optional[str] = None,
    ) -> SearchResult:
        """통합 검색 실행 (빈 쿼리 = 전체 탐색)"""
        effective = await self.merge_options(user_id, query, options)
        return await self.run(self.get_provider(provider).name, effective)

    async def run(
        self,
        provider_name: str,
        effective: EffectiveSearchOptions,
        provider_query: Optional[ProviderQuery] = None,
        use_cache: bool = True,
    ) -> SearchResult:
        """병합이 끝난 옵션으로 한 페이지 실행 (세션 페이지 이동에서도 사용)

        use_cache=False 이면 결과 캐시를 읽지도 쓰지도 않습니다 (랜덤 추출).
        """
        provider = self.get_provider(provider_name)
        pq = provider_query or provider.build_query(effective)
        started = time.perf_counter()

        try:
            executed = await self.wrapper.execute(
                provider.name,
                lambda: provider.fetch(pq),
                cache_key=pq.cache_key if use_cache else None,
                ttl=settings.search_cache_ttl_seconds,
                fallback=None,
            )
        except UpstreamRejectedException as e:
            return SearchResult.rejected(pq.text, provider.name, effective.page, error=e.message)

        if executed.degraded:
            error = getattr(executed.error, "message", None) or str(executed.error or "")
            return SearchResult.degraded(pq.text, provider.name, effective.page, error=error)

        page: ProviderPage = executed.value
        items = self._parse_items(provider, page.raw_items)
        filtered = self.filter.apply(items, effective)
        if effective.sort not in provider.native_sorts:
            filtered = self.filter.sort(filtered, effective.sort)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"[PIPELINE] {provider.name} '{sanitize_for_log(pq.text, 60)}' page={effective.page}: "
            f"{len(filtered)}/{len(page.raw_items)} kept ({'cache' if executed.from_cache else 'upstream'})"
        )
        result = SearchResult.found(
            filtered,
            page=effective.page,
            has_more=page.has_more,
            query=pq.text,
            provider=provider.name,
            from_cache=executed.from_cache,
            raw_count=len(page.raw_items),
            known_total_pages=page.total_pages,
            elapsed_ms=elapsed_ms,
        )
        result.options = effective
        return result

    def _parse_items(self, provider: ContentProvider, raw_items: list[dict[str, Any]]) -> list[ContentItem]:
        items: list[ContentItem] = []
        for raw in raw_items:
            try:
                item = provider.parse_item(raw)
            except (ValidationError, TypeError, ValueError) as e:
                logger.debug(f"[PIPELINE] {provider.name}: skipped unparsable item: {type(e).__name__}")
                continue
            if item is not None:
                items.append(item)
        return items

    async def random(
        self,
        user_id: str,
        query: str = "",
        options: Optional[SearchOptions] = None,
        count: int = 1,
        provider: Optional[str] = None,
    ) -> SearchResult:
        """랜덤 항목

        프로바이더 전용 랜덤 쿼리가 없으면 검색 경로로 대체합니다:
        sort=random, 1~10 중 임의 페이지, 로컬 셔플 후 count 개로 자름.
        """
        if count < 1:
            raise InvalidQueryException("count must be at least 1")
        target = self.get_provider(provider)
        base = await self.merge_options(user_id, query, options)
        return await self._random_batch(target, base, count)

    async def _random_batch(
        self, target: ContentProvider, base: EffectiveSearchOptions, count: int, page: int = 1
    ) -> SearchResult:
        effective = base.model_copy(update={
            "sort": "random",
            "page": self._rng.randint(*RANDOM_PAGE_RANGE),
            "limit": min(100, count * 10),
        })

        result = await self.run(target.name, effective, target.build_random_query(effective), use_cache=False)
        # 랜덤 세션의 페이지 번호는 뽑은 횟수
        result.page = page
        result.options = base
        if not result.is_success:
            return result

        shuffled = list(result.items)
        self._rng.shuffle(shuffled)
        result.items = shuffled[:count]
        result.has_more = True
        result.known_total_pages = None
        return result

    async def trending(
        self,
        user_id: str,
        timeframe: str = "day",
        options: Optional[SearchOptions] = None,
        provider: Optional[str] = None,
    ) -> SearchResult:
        """인기 항목

        프로바이더 전용 트렌딩 쿼리가 없으면 빈 쿼리 + score:desc +
        기간별 최소 점수(day 50 / week 100 / month 200)로 대체합니다.
        """
        if timeframe not in TRENDING_SCORE_FLOORS:
            raise InvalidQueryException(f"timeframe must be one of {', '.join(TRENDING_SCORE_FLOORS)}")
        target = self.get_provider(provider)
        base = await self.merge_options(user_id, "", options)

        dedicated = target.build_trending_query(base, timeframe)
        if dedicated is not None:
            return await self.run(target.name, base, dedicated)

        effective = base.model_copy(update={
            "query": "",
            "sort": "score:desc",
            "min_score": max(base.min_score, TRENDING_SCORE_FLOORS[timeframe]),
        })
        return await self.run(target.name, effective)

    async def fetch_page(
        self,
        provider_name: str,
        kind: SessionKind,
        options: EffectiveSearchOptions,
        page: int,
        timeframe: Optional[str] = None,
        count: int = 1,
    ) -> SearchResult:
        """세션에 저장된 옵션으로 다른 페이지 실행

        - random: 새 랜덤 묶음
        - trending: 전용 쿼리가 있으면 그 쿼리의 해당 페이지
        - 그 외: 같은 쿼리의 해당 페이지
        """
        target = self.get_provider(provider_name)
        if kind == SessionKind.RANDOM:
            return await self._random_batch(target, options, count, page=page)

        effective = options.for_page(page)
        if kind == SessionKind.TRENDING and timeframe:
            dedicated = target.build_trending_query(effective, timeframe)
            if dedicated is not None:
                return await self.run(target.name, effective, dedicated)
        return await self.run(target.name, effective)

    async def get_by_id(self, item_id: str, provider: Optional[str] = None) -> SearchResult:
        """단일 항목 조회 (캐시됨)"""
        item_id = (item_id or "").strip()
        if not item_id:
            raise InvalidQueryException("item id must not be empty")
        target = self.get_provider(provider)

        try:
            executed = await self.wrapper.execute(
                target.name,
                lambda: target.fetch_by_id(item_id),
                cache_key=generate_cache_key("post", target.name, {"id": item_id}),
                ttl=settings.post_cache_ttl_seconds,
                fallback=None,
            )
        except UpstreamRejectedException as e:
            return SearchResult.rejected(item_id, target.name, error=e.message)

        if executed.degraded:
            return SearchResult.degraded(item_id, target.name, error=str(executed.error or ""))
        if executed.value is None:
            return SearchResult.no_results(item_id, target.name)

        item = self._parse_items(target, [executed.value])
        return SearchResult.found(
            item, page=1, has_more=False, query=item_id, provider=target.name,
            from_cache=executed.from_cache, raw_count=1,
        )

    async def autocomplete(self, text: str, provider: Optional[str] = None) -> list[dict[str, Any]]:
        """자동완성 제안 (2글자 미만이면 업스트림 호출 없이 빈 목록)"""
        text = (text or "").strip()
        if len(text) < MIN_AUTOCOMPLETE_LENGTH:
            return []
        target = self.get_provider(provider)

        try:
            executed = await self.wrapper.execute(
                target.name,
                lambda: target.autocomplete(text),
                cache_key=generate_cache_key("autocomplete", target.name, {"q": text.lower()}),
                ttl=settings.autocomplete_cache_ttl_seconds,
                fallback=[],
            )
        except UpstreamRejectedException:
            return []
        return list(executed.value or [])
