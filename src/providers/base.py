"""Provider strategy interface

Each upstream (rule34, reddit, ...) implements ContentProvider. The pipeline
only talks to this protocol, so adding a provider needs no pipeline changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

from src.schemas.content_schema import ContentItem, EffectiveSearchOptions
from src.utils.hash_utils import generate_cache_key


@dataclass(frozen=True)
class ProviderQuery:
    """프로바이더 호출에 필요한 최종 쿼리

    Attributes:
        provider: 프로바이더 이름
        text: 프로바이더 표기 쿼리 (rule34: 태그 문자열, reddit: 서브레딧)
        page: 1부터 시작하는 페이지
        limit: 요청 개수
        sort: 정렬 키
        params: 추가 파라미터 (타임프레임 등)
    """

    provider: str
    text: str
    page: int = 1
    limit: int = 50
    sort: str = "score:desc"
    params: dict[str, Any] = field(default_factory=dict)

    def to_params(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "page": self.page,
            "limit": self.limit,
            "sort": self.sort,
            "params": self.params,
        }

    @property
    def cache_key(self) -> str:
        return generate_cache_key("search", self.provider, self.to_params())


@dataclass
class ProviderPage:
    """원본 응답 한 페이지

    Attributes:
        raw_items: 파싱 전 원본 항목
        limit: 요청한 limit (has_more 판정용)
        total_pages: 프로바이더가 알려준 전체 페이지 수 (없으면 None)
    """

    raw_items: list[dict[str, Any]] = field(default_factory=list)
    limit: int = 50
    total_pages: Optional[int] = None

    @property
    def has_more(self) -> bool:
        return len(self.raw_items) == self.limit and self.limit > 0


@runtime_checkable
class ContentProvider(Protocol):
    """프로바이더 전략 인터페이스

    fetch / fetch_by_id / autocomplete 는 실패 시
    UpstreamFailureException 또는 UpstreamRejectedException 을 던집니다.
    """

    name: str
    native_sorts: frozenset[str]

    def build_query(self, options: EffectiveSearchOptions) -> ProviderQuery:
        ...

    def build_random_query(self, options: EffectiveSearchOptions) -> Optional[ProviderQuery]:
        """전용 랜덤 쿼리 (없으면 None → 검색 경로로 대체)"""
        ...

    def build_trending_query(self, options: EffectiveSearchOptions, timeframe: str) -> Optional[ProviderQuery]:
        """전용 트렌딩 쿼리 (없으면 None → 검색 경로로 대체)"""
        ...

    async def fetch(self, query: ProviderQuery) -> ProviderPage:
        ...

    def parse_item(self, raw: dict[str, Any]) -> Optional[ContentItem]:
        """원본 항목 → ContentItem (파싱 불가 시 None)"""
        ...

    async def fetch_by_id(self, item_id: str) -> Optional[dict[str, Any]]:
        ...

    async def autocomplete(self, text: str) -> list[dict[str, Any]]:
        ...


def to_int(value: Any, default: int = 0) -> int:
    """느슨한 정수 변환 (변환 불가 시 default)"""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
