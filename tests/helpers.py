"""테스트용 Fake 구현 (시계, 프로바이더)"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from src.providers.base import ProviderPage, ProviderQuery
from src.schemas.content_schema import ContentItem, EffectiveSearchOptions, Rating


class FakeClock:
    """수동으로 진행시키는 시계 (초 단위)"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def raw_post(post_id: int, score: int = 100, tags: tuple[str, ...] = (), rating: str = "explicit", **extra: Any) -> dict:
    """FakeProvider 용 원본 항목"""
    return {"id": post_id, "score": score, "tags": list(tags), "rating": rating, **extra}


def make_item(item_id: str, score: int = 100, tags: tuple[str, ...] = (), **extra: Any) -> ContentItem:
    return ContentItem(id=item_id, provider="fake", score=score, tags=tags, **extra)


class FakeProvider:
    """메모리 기반 프로바이더

    - pages: 페이지 번호 → 원본 항목 목록 (없으면 default)
    - errors: fetch 때마다 앞에서부터 하나씩 던질 예외
    - delay: fetch 지연 (초)
    """

    native_sorts = frozenset({"default"})

    def __init__(
        self,
        pages: Optional[dict[int, list[dict]]] = None,
        default: Optional[list[dict]] = None,
        name: str = "fake",
        total_pages: Optional[int] = None,
    ):
        self.name = name
        self.pages = pages or {}
        self.default = default or []
        self.total_pages = total_pages
        self.errors: list[BaseException] = []
        self.delay = 0.0
        self.calls: list[ProviderQuery] = []
        self.posts: dict[str, dict] = {}
        self.suggestions: list[dict[str, Any]] = []
        self.trending_query: Optional[ProviderQuery] = None

    def build_query(self, options: EffectiveSearchOptions) -> ProviderQuery:
        return ProviderQuery(
            provider=self.name,
            text=options.query,
            page=options.page,
            limit=options.limit,
            sort=options.sort,
            params={"min_score": options.min_score, "exclude": list(options.exclude_tags)},
        )

    def build_random_query(self, options: EffectiveSearchOptions) -> Optional[ProviderQuery]:
        return None

    def build_trending_query(self, options: EffectiveSearchOptions, timeframe: str) -> Optional[ProviderQuery]:
        return self.trending_query

    async def fetch(self, query: ProviderQuery) -> ProviderPage:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.errors:
            raise self.errors.pop(0)
        raw = self.pages.get(query.page, self.default)
        return ProviderPage(raw_items=list(raw), limit=query.limit, total_pages=self.total_pages)

    def parse_item(self, raw: dict[str, Any]) -> Optional[ContentItem]:
        if "id" not in raw:
            return None
        tags = tuple(raw.get("tags", ()))
        return ContentItem(
            id=str(raw["id"]),
            provider=self.name,
            tags=tags,
            score=raw.get("score", 0),
            rating=Rating.parse(raw.get("rating")),
            width=raw.get("width", 0),
            height=raw.get("height", 0),
            ai_generated="ai_generated" in tags,
        )

    async def fetch_by_id(self, item_id: str) -> Optional[dict[str, Any]]:
        self.calls.append(ProviderQuery(provider=self.name, text=item_id))
        if self.errors:
            raise self.errors.pop(0)
        return self.posts.get(item_id)

    async def autocomplete(self, text: str) -> list[dict[str, Any]]:
        self.calls.append(ProviderQuery(provider=self.name, text=text))
        if self.errors:
            raise self.errors.pop(0)
        return list(self.suggestions)
