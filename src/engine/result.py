"""Search Result - Standardized Result Format

Provides a standardized format for search and navigation outcomes across all
execution paths (cache / upstream / fallback).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from src.schemas.content_schema import ContentItem, EffectiveSearchOptions, Session, SessionKind


class SearchStatus(str, Enum):
    """검색 상태

    검색 결과의 상태를 나타냅니다.
    """

    SUCCESS = "success"  # 업스트림 성공
    CACHE_HIT = "cache_hit"  # 캐시 히트
    NO_RESULTS = "no_results"  # 결과 없음 (필터링 후 0건 포함, 오류 아님)
    DEGRADED = "degraded"  # 회로 개방 / 업스트림 실패 흡수
    REJECTED = "rejected"  # 업스트림이 쿼리 거절 (쿼리 수정 필요)
    SUPERSEDED = "superseded"  # 같은 사용자의 더 최근 요청에 의해 취소됨


@dataclass
class SearchResult:
    """검색 결과 표준 포맷

    모든 검색 경로(Cache/Upstream/Fallback)에서 사용하는 통일된 결과 형식입니다.

    Attributes:
        status: 검색 상태
        items: 필터/정렬이 끝난 항목
        page: 1부터 시작하는 페이지 번호
        has_more: 원본 페이지 길이 == 요청 limit
        known_total_pages: 프로바이더가 알려준 전체 페이지 수 (모르면 None)
        query: 프로바이더 쿼리
        provider: 프로바이더 이름
        source: 결과 출처 ("cache" | "upstream" | "fallback")
        raw_count: 필터 전 원본 항목 수
        error_message: 오류 메시지
    """

    status: SearchStatus
    items: list[ContentItem] = field(default_factory=list)
    page: int = 1
    has_more: bool = False
    known_total_pages: Optional[int] = None

    # 메타데이터
    query: Optional[str] = None
    provider: Optional[str] = None
    source: Optional[str] = None
    raw_count: int = 0
    elapsed_ms: Optional[float] = None

    # 디버깅 정보
    error_message: Optional[str] = None

    # 실행에 사용된 병합 옵션 (세션 페이지 이동 시 재사용)
    options: Optional[EffectiveSearchOptions] = None

    @property
    def is_success(self) -> bool:
        """성공 여부 반환"""
        return self.status in [SearchStatus.SUCCESS, SearchStatus.CACHE_HIT]

    @property
    def is_error(self) -> bool:
        """오류 여부 반환 (결과 없음은 오류가 아님)"""
        return self.status in [SearchStatus.DEGRADED, SearchStatus.REJECTED]

    @classmethod
    def found(
        cls, items: list[ContentItem], page: int, has_more: bool, query: str, provider: str,
        from_cache: bool = False, raw_count: int = 0, known_total_pages: Optional[int] = None,
        elapsed_ms: Optional[float] = None,
    ) -> "SearchResult":
        """성공 결과 생성 (items 가 비면 NO_RESULTS)"""
        if not items:
            return cls.no_results(query, provider, page, raw_count=raw_count, elapsed_ms=elapsed_ms)
        return cls(
            status=SearchStatus.CACHE_HIT if from_cache else SearchStatus.SUCCESS,
            items=list(items),
            page=page,
            has_more=has_more,
            known_total_pages=known_total_pages,
            query=query,
            provider=provider,
            source="cache" if from_cache else "upstream",
            raw_count=raw_count,
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def no_results(
        cls, query: str, provider: str, page: int = 1, raw_count: int = 0, elapsed_ms: Optional[float] = None,
    ) -> "SearchResult":
        """결과 없음 생성"""
        return cls(
            status=SearchStatus.NO_RESULTS,
            page=page,
            has_more=False,
            query=query,
            provider=provider,
            raw_count=raw_count,
            elapsed_ms=elapsed_ms,
            error_message="No results found",
        )

    @classmethod
    def degraded(cls, query: str, provider: str, page: int = 1, error: str = "") -> "SearchResult":
        """업스트림 불가 (회로 개방/실패) 결과 생성"""
        return cls(
            status=SearchStatus.DEGRADED,
            page=page,
            query=query,
            provider=provider,
            source="fallback",
            error_message=error or "Upstream temporarily unavailable",
        )

    @classmethod
    def rejected(cls, query: str, provider: str, page: int = 1, error: str = "") -> "SearchResult":
        """업스트림 거절 결과 생성"""
        return cls(
            status=SearchStatus.REJECTED,
            page=page,
            query=query,
            provider=provider,
            error_message=error or "Query rejected by upstream. Please adjust your query.",
        )

    @classmethod
    def superseded(cls, query: str = "", provider: Optional[str] = None) -> "SearchResult":
        return cls(
            status=SearchStatus.SUPERSEDED,
            query=query,
            provider=provider,
            error_message="Superseded by a newer request.",
        )


class NavigationAction(str, Enum):
    NEXT = "next"
    PREV = "prev"
    RANDOM = "random"
    NEXT_PAGE = "next_page"
    PREV_PAGE = "prev_page"
    JUMP = "jump"
    CLOSE = "close"

    @property
    def fetches_page(self) -> bool:
        return self in (NavigationAction.NEXT_PAGE, NavigationAction.PREV_PAGE, NavigationAction.JUMP)


class NavigationStatus(str, Enum):
    OK = "ok"
    NO_OP = "no_op"  # 경계에서 이동 없음 / 빈 페이지
    SESSION_EXPIRED = "session_expired"
    OWNERSHIP_VIOLATION = "ownership_violation"
    DEGRADED = "degraded"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"  # 같은 사용자의 더 최근 요청에 의해 취소됨
    CLOSED = "closed"


@dataclass(frozen=True)
class SessionView:
    """렌더링 측에 전달되는 현재 위치 정보"""

    item: Optional[ContentItem]
    index: int
    total: int
    has_more: bool
    page: int
    known_max_page: int
    kind: SessionKind
    query: str

    @classmethod
    def from_session(cls, session: Session) -> "SessionView":
        return cls(
            item=session.current_item,
            index=session.cursor,
            total=len(session.items),
            has_more=session.has_more,
            page=session.page,
            known_max_page=session.known_max_page,
            kind=session.kind,
            query=session.query,
        )


@dataclass
class NavigationResult:
    """탐색 명령 결과"""

    status: NavigationStatus
    view: Optional[SessionView] = None
    message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status in (NavigationStatus.OK, NavigationStatus.NO_OP, NavigationStatus.CLOSED)

    @classmethod
    def ok(cls, session: Session) -> "NavigationResult":
        return cls(status=NavigationStatus.OK, view=SessionView.from_session(session))

    @classmethod
    def no_op(cls, session: Session, message: str = "") -> "NavigationResult":
        return cls(status=NavigationStatus.NO_OP, view=SessionView.from_session(session), message=message or None)

    @classmethod
    def expired(cls) -> "NavigationResult":
        return cls(
            status=NavigationStatus.SESSION_EXPIRED,
            message="Session expired. Please run the search again.",
        )

    @classmethod
    def ownership_violation(cls) -> "NavigationResult":
        return cls(status=NavigationStatus.OWNERSHIP_VIOLATION, message="This session belongs to another user.")

    @classmethod
    def superseded(cls) -> "NavigationResult":
        return cls(status=NavigationStatus.SUPERSEDED, message="Superseded by a newer request.")


@dataclass
class SearchOutcome:
    """세션을 만드는 명령(search/random/trending/open)의 결과"""

    result: SearchResult
    view: Optional[SessionView] = None

    @property
    def status(self) -> SearchStatus:
        return self.result.status
