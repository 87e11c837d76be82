"""Search Routes - HTTP Layer

HTTP Layer는 요청 검증 후 ContentSearchService로 위임하고, 엔진 결과를
HTTP 상태 코드와 응답 모델로 변환하는 Translator 역할만 수행합니다.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from src.api.dependencies import get_search_service
from src.core.logging import logger, sanitize_for_log
from src.engine.result import NavigationAction, NavigationStatus, SearchStatus
from src.schemas.api_schema import (
    AutocompleteResponse,
    FavoritesResponse,
    FavoriteToggleRequest,
    FavoriteToggleResponse,
    HistoryResponse,
    NavigateRequest,
    NavigationResponse,
    RandomRequest,
    SearchRequest,
    SearchResponse,
    SessionViewResponse,
    TrendingRequest,
)
from src.services.impl.content_search_service import ContentSearchService

router = APIRouter(prefix="/api/v1", tags=["search"])

# 결과 상태 → HTTP 상태 코드 (나머지는 200)
SEARCH_STATUS_CODES = {
    SearchStatus.REJECTED: 422,
    SearchStatus.DEGRADED: 503,
    SearchStatus.SUPERSEDED: 409,
}

NAVIGATION_STATUS_CODES = {
    NavigationStatus.SESSION_EXPIRED: 410,
    NavigationStatus.OWNERSHIP_VIOLATION: 403,
    NavigationStatus.REJECTED: 422,
    NavigationStatus.DEGRADED: 503,
    NavigationStatus.SUPERSEDED: 409,
}


def _search_response(outcome, response: Response) -> SearchResponse:
    response.status_code = SEARCH_STATUS_CODES.get(outcome.status, 200)
    return SearchResponse.from_outcome(outcome)


def _navigation_response(result, response: Response) -> NavigationResponse:
    response.status_code = NAVIGATION_STATUS_CODES.get(result.status, 200)
    return NavigationResponse.from_result(result)


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    response: Response,
    service: ContentSearchService = Depends(get_search_service),
):
    """검색 API

    HTTP → Pipeline → Cache/Upstream(회로차단) → Filter → Session

    Flow:
        1. HTTP Request 수신 (입력 검증)
        2. 사용자 설정/차단 목록과 옵션 병합
        3. 엔진에 위임
        4. 첫 페이지로 세션 생성
        5. 현재 항목 + 페이지 정보 반환
    """
    logger.info(f"[API] Search request: user={request.user_id} query='{sanitize_for_log(request.query, 60)}'")
    outcome = await service.search(request.user_id, request.query, request.options, request.provider)
    return _search_response(outcome, response)


@router.post("/random", response_model=SearchResponse)
async def random_items(
    request: RandomRequest,
    response: Response,
    service: ContentSearchService = Depends(get_search_service),
):
    outcome = await service.random(
        request.user_id, request.query, request.options, request.count, request.provider
    )
    return _search_response(outcome, response)


@router.post("/trending", response_model=SearchResponse)
async def trending(
    request: TrendingRequest,
    response: Response,
    service: ContentSearchService = Depends(get_search_service),
):
    outcome = await service.trending(request.user_id, request.timeframe, request.options, request.provider)
    return _search_response(outcome, response)


@router.get("/posts/{item_id}", response_model=SearchResponse)
async def open_post(
    item_id: str,
    response: Response,
    user_id: str = Query(..., min_length=1, max_length=64),
    provider: Optional[str] = Query(None, max_length=32),
    service: ContentSearchService = Depends(get_search_service),
):
    """id 로 단일 항목 조회 (없으면 no_results)"""
    outcome = await service.open_post(user_id, item_id, provider)
    return _search_response(outcome, response)


@router.get("/sessions/{owner_id}", response_model=Optional[SessionViewResponse])
async def current_session(
    owner_id: str,
    response: Response,
    service: ContentSearchService = Depends(get_search_service),
):
    view = service.current_view(owner_id)
    if view is None:
        response.status_code = 410
        return None
    return SessionViewResponse.from_view(view)


@router.post("/sessions/{owner_id}/navigate", response_model=NavigationResponse)
async def navigate(
    owner_id: str,
    request: NavigateRequest,
    response: Response,
    service: ContentSearchService = Depends(get_search_service),
):
    """세션 탐색 (next / prev / random / next_page / prev_page / jump / close)

    소유자가 아닌 사용자의 조작은 403 으로 거절되며 세션은 변경되지 않습니다.
    """
    result = await service.navigate(owner_id, request.actor_id, request.action, request.target_page)
    return _navigation_response(result, response)


@router.delete("/sessions/{owner_id}", response_model=NavigationResponse)
async def close_session(
    owner_id: str,
    response: Response,
    actor_id: str = Query(..., min_length=1, max_length=64),
    service: ContentSearchService = Depends(get_search_service),
):
    result = await service.navigate(owner_id, actor_id, NavigationAction.CLOSE)
    return _navigation_response(result, response)


@router.post("/sessions/{owner_id}/favorite", response_model=FavoriteToggleResponse)
async def toggle_favorite(
    owner_id: str,
    request: FavoriteToggleRequest,
    response: Response,
    service: ContentSearchService = Depends(get_search_service),
):
    """현재 항목을 세션 소유자의 즐겨찾기에 토글 (소유자가 아니면 403)"""
    favorited = await service.toggle_favorite(owner_id, request.actor_id)
    if favorited is None:
        response.status_code = 410
        return FavoriteToggleResponse(favorited=False)
    return FavoriteToggleResponse(favorited=favorited)


@router.get("/autocomplete", response_model=AutocompleteResponse)
async def autocomplete(
    q: str = Query("", max_length=100),
    provider: Optional[str] = Query(None, max_length=32),
    service: ContentSearchService = Depends(get_search_service),
):
    """자동완성 (2글자 미만이면 빈 목록)"""
    return AutocompleteResponse(suggestions=await service.autocomplete(q, provider))


@router.get("/users/{user_id}/favorites", response_model=FavoritesResponse)
async def get_favorites(user_id: str, service: ContentSearchService = Depends(get_search_service)):
    return FavoritesResponse(favorites=await service.get_favorites(user_id))


@router.get("/users/{user_id}/history", response_model=HistoryResponse)
async def get_history(
    user_id: str,
    limit: Optional[int] = Query(None, ge=1, le=100),
    service: ContentSearchService = Depends(get_search_service),
):
    return HistoryResponse(history=await service.get_history(user_id, limit))
