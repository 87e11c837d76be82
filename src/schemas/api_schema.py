"""HTTP 요청/응답 스키마 (입력 검증 포함)"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from src.core.security import SecurityValidator
from src.engine.result import NavigationAction, NavigationResult, SearchOutcome, SessionView
from src.schemas.content_schema import (
    ContentItem,
    FavoriteEntry,
    HistoryEntry,
    MediaKind,
    Quality,
    Rating,
    SearchOptions,
    SessionKind,
)


def _check_user_id(v: str) -> str:
    v = (v or "").strip()
    SecurityValidator.validate_user_id(v)
    return v


class SearchRequest(BaseModel):
    """검색 요청"""
    user_id: str = Field(..., min_length=1, max_length=64, description="명령을 실행한 사용자 id")
    query: str = Field("", max_length=500, description="검색어 (빈 값이면 전체 탐색)")
    options: SearchOptions = Field(default_factory=SearchOptions, description="검색 옵션 (생략 시 사용자 설정)")
    provider: Optional[str] = Field(None, max_length=32, description="프로바이더 이름 (생략 시 기본값)")

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        return _check_user_id(v)

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        SecurityValidator.validate_query(v)
        return v.strip()

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: SearchOptions) -> SearchOptions:
        SecurityValidator.validate_tags(list(v.exclude_tags) + list(v.require_tags))
        return v


class RandomRequest(SearchRequest):
    """랜덤 요청"""
    count: int = Field(1, ge=1, le=10, description="뽑을 항목 수")


class TrendingRequest(BaseModel):
    """인기 항목 요청"""
    user_id: str = Field(..., min_length=1, max_length=64)
    timeframe: str = Field("day", pattern="^(day|week|month)$")
    options: SearchOptions = Field(default_factory=SearchOptions)
    provider: Optional[str] = Field(None, max_length=32)

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        return _check_user_id(v)


class NavigateRequest(BaseModel):
    """세션 탐색 요청

    owner_id 는 경로의 세션 소유자, actor_id 는 버튼을 누른 사용자입니다.
    """
    actor_id: str = Field(..., min_length=1, max_length=64)
    action: NavigationAction
    target_page: Optional[int] = Field(None, ge=1, description="jump 대상 페이지")

    @field_validator("actor_id")
    @classmethod
    def validate_actor_id(cls, v: str) -> str:
        return _check_user_id(v)


class FavoriteToggleRequest(BaseModel):
    actor_id: str = Field(..., min_length=1, max_length=64)

    @field_validator("actor_id")
    @classmethod
    def validate_actor_id(cls, v: str) -> str:
        return _check_user_id(v)


class BlacklistRequest(BaseModel):
    tags: list[str] = Field(..., min_length=1, max_length=50)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        SecurityValidator.validate_tags(v)
        return v


class ItemResponse(BaseModel):
    """렌더링 측에 전달되는 항목 (원본 페이로드 제외)"""
    id: str
    provider: str
    tags: list[str]
    score: int
    rating: Rating
    width: int
    height: int
    kind: MediaKind
    is_animated: bool
    ai_generated: bool
    quality: Quality
    url: Optional[str] = None
    page_url: Optional[str] = None
    preview_url: Optional[str] = None
    title: Optional[str] = None

    @classmethod
    def from_item(cls, item: ContentItem) -> "ItemResponse":
        return cls(**item.model_dump(exclude={"raw"}))


class SessionViewResponse(BaseModel):
    item: Optional[ItemResponse] = None
    index: int
    total: int
    has_more: bool
    page: int
    known_max_page: int
    kind: SessionKind
    query: str

    @classmethod
    def from_view(cls, view: Optional[SessionView]) -> Optional["SessionViewResponse"]:
        if view is None:
            return None
        return cls(
            item=ItemResponse.from_item(view.item) if view.item else None,
            index=view.index,
            total=view.total,
            has_more=view.has_more,
            page=view.page,
            known_max_page=view.known_max_page,
            kind=view.kind,
            query=view.query,
        )


class SearchResponse(BaseModel):
    """검색 계열 응답"""
    status: str = Field(..., description="success | cache_hit | no_results | degraded | rejected | superseded")
    degraded: bool = Field(False, description="업스트림 불가로 대체 결과가 반환되었는지")
    view: Optional[SessionViewResponse] = None
    provider: Optional[str] = None
    source: Optional[str] = Field(None, description="결과 출처: cache | upstream | fallback")
    raw_count: int = 0
    elapsed_ms: Optional[float] = None
    message: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: SearchOutcome) -> "SearchResponse":
        result = outcome.result
        return cls(
            status=result.status.value,
            degraded=result.status.value == "degraded",
            view=SessionViewResponse.from_view(outcome.view),
            provider=result.provider,
            source=result.source,
            raw_count=result.raw_count,
            elapsed_ms=round(result.elapsed_ms, 2) if result.elapsed_ms is not None else None,
            message=result.error_message,
        )


class NavigationResponse(BaseModel):
    status: str
    view: Optional[SessionViewResponse] = None
    message: Optional[str] = None

    @classmethod
    def from_result(cls, result: NavigationResult) -> "NavigationResponse":
        return cls(
            status=result.status.value,
            view=SessionViewResponse.from_view(result.view),
            message=result.message,
        )


class AutocompleteResponse(BaseModel):
    suggestions: list[dict[str, Any]]


class FavoriteToggleResponse(BaseModel):
    favorited: bool


class FavoritesResponse(BaseModel):
    favorites: list[FavoriteEntry]


class HistoryResponse(BaseModel):
    history: list[HistoryEntry]


class BlacklistResponse(BaseModel):
    tags: list[str]
    changed: list[str] = Field(default_factory=list, description="이번 요청으로 실제 변경된 태그")


class ErrorResponse(BaseModel):
    """오류 응답"""
    status: str = "error"
    error_code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str
    timestamp: datetime
    version: str
    persistence_backend: str
    persistence_ok: bool
    active_sessions: int
    breakers: dict[str, dict[str, Any]]
    cache: dict[str, Any]
