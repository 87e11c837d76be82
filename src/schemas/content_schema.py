"""Pydantic 도메인 스키마 (ContentItem / SearchOptions / Preferences / Session)"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SORT_KEYS = ("score:desc", "score:asc", "id:desc", "id:asc", "random", "default")


class Rating(str, Enum):
    """콘텐츠 등급"""

    SAFE = "safe"
    QUESTIONABLE = "questionable"
    EXPLICIT = "explicit"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "Rating":
        """프로바이더 원문 등급('s', 'q', 'e', 'general' 등)을 정규화"""
        if isinstance(value, Rating):
            return value
        text = str(value or "").strip().lower()
        if not text:
            return cls.UNKNOWN
        aliases = {
            "s": cls.SAFE, "safe": cls.SAFE, "general": cls.SAFE, "g": cls.SAFE, "sensitive": cls.QUESTIONABLE,
            "q": cls.QUESTIONABLE, "questionable": cls.QUESTIONABLE,
            "e": cls.EXPLICIT, "explicit": cls.EXPLICIT,
        }
        return aliases.get(text, cls.UNKNOWN)


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    GALLERY = "gallery"
    TEXT = "text"


class Quality(str, Enum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class ContentType(str, Enum):
    """사용자 콘텐츠 유형 필터"""

    ANIMATED = "animated"
    COMIC = "comic"
    PHOTO = "photo"


class SessionKind(str, Enum):
    SEARCH = "search"
    RANDOM = "random"
    SINGLE = "single"
    TRENDING = "trending"


def _validate_sort(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip().lower()
    if v not in SORT_KEYS:
        raise ValueError(f"sort must be one of {', '.join(SORT_KEYS)}")
    return v


class ContentItem(BaseModel):
    """프로바이더 독립적인 정규화 결과 항목 (불변)

    ai_generated / quality / kind 는 태그 기반 휴리스틱으로 계산된 값이며
    정확성을 보장하지 않습니다.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    provider: str
    tags: tuple[str, ...] = ()
    score: int = 0
    rating: Rating = Rating.UNKNOWN
    width: int = 0
    height: int = 0
    kind: MediaKind = MediaKind.IMAGE
    is_animated: bool = False
    ai_generated: bool = False
    quality: Quality = Quality.NORMAL
    url: Optional[str] = None
    page_url: Optional[str] = None
    preview_url: Optional[str] = None
    title: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict, description="원본 페이로드 (렌더링 측에만 전달)")

    @property
    def sort_id(self) -> int:
        """id 정렬용 정수 (숫자가 아니면 0)"""
        try:
            return int(self.id)
        except (TypeError, ValueError):
            return 0


class SearchOptions(BaseModel):
    """호출자가 전달한 부분 옵션 (None = 미지정 → 사용자 설정/기본값 사용)"""

    model_config = ConfigDict(frozen=True)

    rating: Optional[Rating] = None
    exclude_ai: Optional[bool] = None
    min_score: Optional[int] = Field(None, ge=0)
    min_width: Optional[int] = Field(None, ge=0)
    max_width: Optional[int] = Field(None, ge=0)
    min_height: Optional[int] = Field(None, ge=0)
    max_height: Optional[int] = Field(None, ge=0)
    content_type: Optional[ContentType] = None
    exclude_tags: tuple[str, ...] = ()
    require_tags: tuple[str, ...] = ()
    sort: Optional[str] = None
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1, le=100)
    high_quality_only: Optional[bool] = None
    exclude_low_quality: Optional[bool] = None

    @field_validator("sort")
    @classmethod
    def validate_sort(cls, v: Optional[str]) -> Optional[str]:
        return _validate_sort(v)


class EffectiveSearchOptions(BaseModel):
    """사용자 설정과 병합이 끝난 최종 옵션 (불변)"""

    model_config = ConfigDict(frozen=True)

    query: str = ""
    rating: Optional[Rating] = None
    exclude_ai: bool = True
    min_score: int = 0
    min_width: int = 0
    max_width: int = 0
    min_height: int = 0
    max_height: int = 0
    content_type: Optional[ContentType] = None
    exclude_tags: tuple[str, ...] = ()
    require_tags: tuple[str, ...] = ()
    sort: str = "score:desc"
    page: int = 1
    limit: int = 50
    high_quality_only: bool = False
    exclude_low_quality: bool = True

    def for_page(self, page: int) -> "EffectiveSearchOptions":
        return self.model_copy(update={"page": max(1, page)})


class Preferences(BaseModel):
    """사용자별 영속 설정"""

    user_id: str = ""
    default_sort: str = "score:desc"
    min_score: int = Field(0, ge=0)
    ai_filter: bool = True
    high_quality_only: bool = False
    exclude_low_quality: bool = True
    default_rating: Optional[Rating] = None
    results_per_page: int = Field(50, ge=1, le=100)

    @field_validator("default_sort")
    @classmethod
    def validate_sort(cls, v: str) -> str:
        return _validate_sort(v) or "score:desc"


class PreferencesUpdate(BaseModel):
    """설정 부분 갱신 (전달하지 않은 필드는 변경 없음)"""

    default_sort: Optional[str] = None
    min_score: Optional[int] = Field(None, ge=0)
    ai_filter: Optional[bool] = None
    high_quality_only: Optional[bool] = None
    exclude_low_quality: Optional[bool] = None
    default_rating: Optional[Rating] = None
    results_per_page: Optional[int] = Field(None, ge=1, le=100)

    @field_validator("default_sort")
    @classmethod
    def validate_sort(cls, v: Optional[str]) -> Optional[str]:
        return _validate_sort(v)


class FavoriteEntry(BaseModel):
    id: str
    provider: str = ""
    score: Optional[int] = None
    rating: Optional[Rating] = None
    added_at: float


class HistoryEntry(BaseModel):
    id: str
    provider: str = ""
    score: Optional[int] = None
    viewed_at: float


class Session(BaseModel):
    """사용자별 진행 중인 탐색 세션 (불변 - 변경 시 교체)"""

    model_config = ConfigDict(frozen=True)

    user_id: str
    kind: SessionKind
    provider: str
    query: str = ""
    options: Optional[EffectiveSearchOptions] = None
    items: tuple[ContentItem, ...] = ()
    cursor: int = 0
    page: int = 1
    has_more: bool = False
    known_max_page: int = 1
    timeframe: Optional[str] = None
    created_at: float
    expires_at: float

    @property
    def current_item(self) -> Optional[ContentItem]:
        if not self.items:
            return None
        return self.items[self.cursor]

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at
