"""ContentSearchService 세션 탐색 테스트

- 소유자 검사 우선 (위반 시 세션 불변)
- 경계에서 멈춤 (순환 없음)
- 빈 페이지 / 실패 시 현재 위치 유지
- 같은 사용자의 마지막 요청 우선
"""

import asyncio

import pytest

from src.core.exceptions import (
    OwnershipViolationException,
    UpstreamFailureException,
    UpstreamRejectedException,
)
from src.engine.result import NavigationAction, NavigationStatus, SearchStatus
from src.schemas.content_schema import SearchOptions, SessionKind
from tests.helpers import raw_post

PAGE_OPTIONS = SearchOptions(limit=3)


def _page(*ids):
    return [raw_post(i) for i in ids]


@pytest.fixture
def paged_provider(fake_provider):
    fake_provider.pages = {1: _page(1, 2, 3), 2: _page(4, 5, 6)}
    return fake_provider


async def _open(service, user_id="u1", query="cats"):
    outcome = await service.search(user_id, query, PAGE_OPTIONS)
    assert outcome.status == SearchStatus.SUCCESS
    return outcome


class TestSessionCreation:
    @pytest.mark.asyncio
    async def test_search_opens_session(self, service, paged_provider):
        outcome = await _open(service)

        assert outcome.view.item.id == "1"
        assert outcome.view.index == 0
        assert outcome.view.total == 3
        assert outcome.view.page == 1
        assert outcome.view.has_more is True
        assert outcome.view.known_max_page == 2
        assert outcome.view.kind == SessionKind.SEARCH

    @pytest.mark.asyncio
    async def test_failed_search_keeps_existing_session(self, service, paged_provider):
        await _open(service, query="cats")
        paged_provider.errors = [UpstreamFailureException("fake", "HTTP 502", 502)]

        outcome = await service.search("u1", "dogs", PAGE_OPTIONS)
        assert outcome.status == SearchStatus.DEGRADED
        assert outcome.view is None
        assert service.current_view("u1").query == "cats"

    @pytest.mark.asyncio
    async def test_no_results_does_not_open_session(self, service, fake_provider):
        outcome = await service.search("u1", "nothing")
        assert outcome.status == SearchStatus.NO_RESULTS
        assert service.current_view("u1") is None

    @pytest.mark.asyncio
    async def test_newer_search_supersedes_older(self, service, fake_provider):
        fake_provider.default = _page(1)
        fake_provider.delay = 0.05

        first = asyncio.create_task(service.search("u1", "old"))
        await asyncio.sleep(0)
        second = await service.search("u1", "new")

        assert (await first).status == SearchStatus.SUPERSEDED
        assert second.status == SearchStatus.SUCCESS
        assert service.current_view("u1").query == "new"

    @pytest.mark.asyncio
    async def test_view_is_recorded_in_history(self, service, paged_provider, preference_service):
        await _open(service)
        await service.navigate("u1", "u1", NavigationAction.NEXT)

        history = await preference_service.get_history("u1")
        assert [h.id for h in history] == ["2", "1"]


class TestCursorNavigation:
    @pytest.mark.asyncio
    async def test_next_and_prev_stop_at_edges(self, service, paged_provider):
        await _open(service)

        result = await service.navigate("u1", "u1", NavigationAction.PREV)
        assert result.status == NavigationStatus.NO_OP
        assert result.view.index == 0

        await service.navigate("u1", "u1", NavigationAction.NEXT)
        result = await service.navigate("u1", "u1", NavigationAction.NEXT)
        assert result.status == NavigationStatus.OK
        assert result.view.index == 2
        assert result.view.item.id == "3"

        result = await service.navigate("u1", "u1", NavigationAction.NEXT)
        assert result.status == NavigationStatus.NO_OP
        assert result.view.index == 2

    @pytest.mark.asyncio
    async def test_ownership_checked_first(self, service, paged_provider):
        await _open(service)

        result = await service.navigate("u1", "intruder", NavigationAction.NEXT)
        assert result.status == NavigationStatus.OWNERSHIP_VIOLATION
        assert result.view is None
        assert service.current_view("u1").index == 0

        result = await service.navigate("u1", "intruder", NavigationAction.CLOSE)
        assert result.status == NavigationStatus.OWNERSHIP_VIOLATION
        assert service.current_view("u1") is not None

    @pytest.mark.asyncio
    async def test_ownership_violation_even_without_session(self, service):
        result = await service.navigate("ghost", "intruder", NavigationAction.NEXT)
        assert result.status == NavigationStatus.OWNERSHIP_VIOLATION

    @pytest.mark.asyncio
    async def test_expired_session(self, service, paged_provider, clock):
        await _open(service)
        clock.advance(600)

        result = await service.navigate("u1", "u1", NavigationAction.NEXT)
        assert result.status == NavigationStatus.SESSION_EXPIRED
        assert service.current_view("u1") is None

    @pytest.mark.asyncio
    async def test_navigation_slides_expiry(self, service, paged_provider, clock):
        await _open(service)
        clock.advance(500)
        await service.navigate("u1", "u1", NavigationAction.NEXT)
        clock.advance(500)

        result = await service.navigate("u1", "u1", NavigationAction.NEXT)
        assert result.status == NavigationStatus.OK

    @pytest.mark.asyncio
    async def test_random_jump_within_page(self, service, paged_provider):
        await _open(service)
        result = await service.navigate("u1", "u1", NavigationAction.RANDOM)
        assert result.status == NavigationStatus.OK
        assert 0 <= result.view.index < 3

    @pytest.mark.asyncio
    async def test_random_jump_single_item_is_no_op(self, service, fake_provider):
        fake_provider.default = _page(1)
        await service.search("u1", "one")
        result = await service.navigate("u1", "u1", NavigationAction.RANDOM)
        assert result.status == NavigationStatus.NO_OP

    @pytest.mark.asyncio
    async def test_close(self, service, paged_provider):
        await _open(service)

        result = await service.navigate("u1", "u1", NavigationAction.CLOSE)
        assert result.status == NavigationStatus.CLOSED
        assert service.current_view("u1") is None

        result = await service.navigate("u1", "u1", NavigationAction.NEXT)
        assert result.status == NavigationStatus.SESSION_EXPIRED


class TestPageNavigation:
    @pytest.mark.asyncio
    async def test_next_and_prev_page(self, service, paged_provider):
        await _open(service)
        await service.navigate("u1", "u1", NavigationAction.NEXT)

        result = await service.navigate("u1", "u1", NavigationAction.NEXT_PAGE)
        assert result.status == NavigationStatus.OK
        assert result.view.page == 2
        assert result.view.index == 0
        assert result.view.item.id == "4"
        assert paged_provider.calls[-1].page == 2

        result = await service.navigate("u1", "u1", NavigationAction.PREV_PAGE)
        assert result.view.page == 1
        assert result.view.item.id == "1"
        # 1페이지는 캐시에서
        assert len(paged_provider.calls) == 2

    @pytest.mark.asyncio
    async def test_prev_page_on_first_page(self, service, paged_provider):
        await _open(service)
        result = await service.navigate("u1", "u1", NavigationAction.PREV_PAGE)
        assert result.status == NavigationStatus.NO_OP
        assert len(paged_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_next_page_without_more(self, service, fake_provider):
        fake_provider.pages = {1: _page(1, 2)}
        await service.search("u1", "cats", PAGE_OPTIONS)

        result = await service.navigate("u1", "u1", NavigationAction.NEXT_PAGE)
        assert result.status == NavigationStatus.NO_OP
        assert len(fake_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_empty_page_keeps_position(self, service, fake_provider):
        fake_provider.pages = {1: _page(1, 2, 3)}
        await _open(service)
        await service.navigate("u1", "u1", NavigationAction.NEXT)

        result = await service.navigate("u1", "u1", NavigationAction.NEXT_PAGE)
        assert result.status == NavigationStatus.NO_OP
        assert result.view.page == 1
        assert result.view.index == 1

    @pytest.mark.asyncio
    async def test_jump_is_clamped_to_known_pages(self, service, paged_provider):
        await _open(service)

        result = await service.navigate("u1", "u1", NavigationAction.JUMP, target_page=50)
        assert result.status == NavigationStatus.OK
        assert result.view.page == 2

        result = await service.navigate("u1", "u1", NavigationAction.JUMP, target_page=-4)
        assert result.view.page == 1

    @pytest.mark.asyncio
    async def test_jump_uses_provider_total_pages(self, service, fake_provider):
        fake_provider.default = _page(1, 2, 3)
        fake_provider.total_pages = 5
        await _open(service)

        result = await service.navigate("u1", "u1", NavigationAction.JUMP, target_page=9)
        assert result.view.page == 5
        assert result.view.known_max_page == 5

    @pytest.mark.asyncio
    async def test_jump_to_same_page_or_without_target(self, service, paged_provider):
        await _open(service)
        same = await service.navigate("u1", "u1", NavigationAction.JUMP, target_page=1)
        missing = await service.navigate("u1", "u1", NavigationAction.JUMP)
        assert same.status == NavigationStatus.NO_OP
        assert missing.status == NavigationStatus.NO_OP

    @pytest.mark.asyncio
    async def test_degraded_page_keeps_view(self, service, paged_provider):
        await _open(service)
        await service.navigate("u1", "u1", NavigationAction.NEXT)
        paged_provider.errors = [UpstreamFailureException("fake", "HTTP 503", 503)]

        result = await service.navigate("u1", "u1", NavigationAction.NEXT_PAGE)
        assert result.status == NavigationStatus.DEGRADED
        assert result.view.page == 1
        assert result.view.index == 1
        assert service.current_view("u1").page == 1

    @pytest.mark.asyncio
    async def test_rejected_page_keeps_view(self, service, paged_provider):
        await _open(service)
        paged_provider.errors = [UpstreamRejectedException("fake", 422)]

        result = await service.navigate("u1", "u1", NavigationAction.NEXT_PAGE)
        assert result.status == NavigationStatus.REJECTED
        assert result.view.page == 1

    @pytest.mark.asyncio
    async def test_newer_page_request_supersedes_older(self, service, paged_provider):
        await _open(service)
        paged_provider.delay = 0.05

        first = asyncio.create_task(service.navigate("u1", "u1", NavigationAction.NEXT_PAGE))
        await asyncio.sleep(0)
        second = await service.navigate("u1", "u1", NavigationAction.NEXT_PAGE)

        assert (await first).status == NavigationStatus.SUPERSEDED
        assert second.status == NavigationStatus.OK
        assert service.current_view("u1").page == 2

    @pytest.mark.asyncio
    async def test_single_session_has_no_pages(self, service, fake_provider):
        fake_provider.posts = {"42": raw_post(42)}
        outcome = await service.open_post("u1", "42")
        assert outcome.view.kind == SessionKind.SINGLE
        assert outcome.view.has_more is False

        result = await service.navigate("u1", "u1", NavigationAction.NEXT_PAGE)
        assert result.status == NavigationStatus.NO_OP

    @pytest.mark.asyncio
    async def test_random_session_draws_new_batch(self, service, fake_provider):
        fake_provider.default = _page(*range(1, 21))
        outcome = await service.random("u1", "", count=2)
        assert outcome.view.kind == SessionKind.RANDOM
        assert outcome.view.total == 2

        result = await service.navigate("u1", "u1", NavigationAction.NEXT_PAGE)
        assert result.status == NavigationStatus.OK
        assert result.view.page == 2
        assert result.view.total == 2

    @pytest.mark.asyncio
    async def test_trending_session(self, service, fake_provider):
        fake_provider.default = [raw_post(1, score=500), raw_post(2, score=10)]
        outcome = await service.trending("u1", "week")
        assert outcome.view.kind == SessionKind.TRENDING
        assert outcome.view.total == 1


class TestFavorites:
    @pytest.mark.asyncio
    async def test_toggle_current_item(self, service, paged_provider):
        await _open(service)

        assert await service.toggle_favorite("u1", "u1") is True
        favorites = await service.get_favorites("u1")
        assert [f.id for f in favorites] == ["1"]

        assert await service.toggle_favorite("u1", "u1") is False
        assert await service.get_favorites("u1") == []

    @pytest.mark.asyncio
    async def test_other_user_cannot_toggle(self, service, paged_provider):
        await _open(service)

        with pytest.raises(OwnershipViolationException):
            await service.toggle_favorite("u1", "intruder")
        assert await service.get_favorites("u1") == []
        assert await service.get_favorites("intruder") == []

    @pytest.mark.asyncio
    async def test_ownership_checked_before_session_lookup(self, service):
        with pytest.raises(OwnershipViolationException):
            await service.toggle_favorite("nobody", "intruder")

    @pytest.mark.asyncio
    async def test_toggle_without_session(self, service):
        assert await service.toggle_favorite("nobody", "nobody") is None


@pytest.mark.asyncio
async def test_sweep_sessions(service, paged_provider, clock):
    await _open(service, "u1")
    await _open(service, "u2", query="dogs")
    clock.advance(601)
    assert service.sweep_sessions() == 2
