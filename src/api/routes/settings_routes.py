"""사용자 설정 / 차단 목록 / 조회 기록 관리 API"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_preference_service
from src.schemas.api_schema import BlacklistRequest, BlacklistResponse
from src.schemas.content_schema import Preferences, PreferencesUpdate
from src.services.impl.preference_service import PreferenceService

router = APIRouter(prefix="/api/v1", tags=["settings"])


@router.get("/users/{user_id}/preferences", response_model=Preferences)
async def get_preferences(user_id: str, service: PreferenceService = Depends(get_preference_service)):
    return await service.get_preferences(user_id)


@router.patch("/users/{user_id}/preferences", response_model=Preferences)
async def update_preferences(
    user_id: str,
    update: PreferencesUpdate,
    service: PreferenceService = Depends(get_preference_service),
):
    """부분 갱신 (보낸 필드만 변경)"""
    return await service.set_preferences(user_id, update)


@router.delete("/users/{user_id}/preferences", response_model=Preferences)
async def reset_preferences(user_id: str, service: PreferenceService = Depends(get_preference_service)):
    return await service.reset_preferences(user_id)


@router.get("/users/{user_id}/blacklist", response_model=BlacklistResponse)
async def get_blacklist(user_id: str, service: PreferenceService = Depends(get_preference_service)):
    return BlacklistResponse(tags=sorted(await service.get_blacklist(user_id)))


@router.post("/users/{user_id}/blacklist", response_model=BlacklistResponse)
async def add_to_blacklist(
    user_id: str,
    request: BlacklistRequest,
    service: PreferenceService = Depends(get_preference_service),
):
    """태그 추가 (이미 있는 태그는 changed 에 포함되지 않음)"""
    added = await service.add_to_blacklist(user_id, request.tags)
    return BlacklistResponse(tags=sorted(await service.get_blacklist(user_id)), changed=added)


@router.post("/users/{user_id}/blacklist/remove", response_model=BlacklistResponse)
async def remove_from_blacklist(
    user_id: str,
    request: BlacklistRequest,
    service: PreferenceService = Depends(get_preference_service),
):
    removed = await service.remove_from_blacklist(user_id, request.tags)
    return BlacklistResponse(tags=sorted(await service.get_blacklist(user_id)), changed=removed)


@router.delete("/users/{user_id}/blacklist", response_model=BlacklistResponse)
async def clear_blacklist(user_id: str, service: PreferenceService = Depends(get_preference_service)):
    current = sorted(await service.get_blacklist(user_id))
    await service.clear_blacklist(user_id)
    return BlacklistResponse(tags=[], changed=current)


@router.get("/blacklist/suggestions", response_model=list[str])
async def blacklist_suggestions(service: PreferenceService = Depends(get_preference_service)):
    return service.blacklist_suggestions()


@router.delete("/users/{user_id}/history")
async def clear_history(user_id: str, service: PreferenceService = Depends(get_preference_service)):
    return {"cleared": await service.clear_history(user_id)}
