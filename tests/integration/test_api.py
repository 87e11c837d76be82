"""API 통합 테스트 (Fake 프로바이더 + 메모리 저장소, 외부 호출 없음)"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.api.dependencies import (
    get_breaker_registry,
    get_kv_store,
    get_preference_service,
    get_search_cache,
    get_search_service,
    get_session_store,
)
from src.api.routes.search_routes import NAVIGATION_STATUS_CODES, SEARCH_STATUS_CODES
from src.app import create_app
from src.core.exceptions import UpstreamFailureException, UpstreamRejectedException
from src.engine.result import NavigationStatus, SearchStatus
from tests.helpers import raw_post

app = create_app()


@pytest_asyncio.fixture
async def client(service, preference_service, memory_store, breaker_registry, wrapper, session_store, fake_provider):
    fake_provider.pages = {1: [raw_post(1), raw_post(2), raw_post(3)], 2: [raw_post(4), raw_post(5), raw_post(6)]}
    app.dependency_overrides[get_search_service] = lambda: service
    app.dependency_overrides[get_preference_service] = lambda: preference_service
    app.dependency_overrides[get_kv_store] = lambda: memory_store
    app.dependency_overrides[get_breaker_registry] = lambda: breaker_registry
    app.dependency_overrides[get_search_cache] = lambda: wrapper.cache
    app.dependency_overrides[get_session_store] = lambda: session_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _search(client, user_id="u1", query="cats", **options):
    return await client.post(
        "/api/v1/search",
        json={"user_id": user_id, "query": query, "options": {"limit": 3, **options}},
    )


def test_status_code_tables():
    assert SEARCH_STATUS_CODES[SearchStatus.SUPERSEDED] == 409
    assert SEARCH_STATUS_CODES.get(SearchStatus.NO_RESULTS, 200) == 200
    assert NAVIGATION_STATUS_CODES[NavigationStatus.SUPERSEDED] == 409
    assert NAVIGATION_STATUS_CODES.get(NavigationStatus.NO_OP, 200) == 200


@pytest.mark.asyncio
class TestHealthAPI:
    """헬스 체크 API 테스트"""

    async def test_health_check(self, client) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["persistence_ok"] is True
        assert "timestamp" in data
        assert "version" in data

    async def test_open_circuit_is_degraded(self, client, breaker_registry) -> None:
        breaker_registry.get("fake").trip()
        data = (await client.get("/health")).json()
        assert data["status"] == "degraded"
        assert data["breakers"]["fake"]["state"] == "open"

        response = await client.post("/health/breakers/fake/reset")
        assert response.status_code == 200
        assert response.json()["state"] == "closed"

    async def test_reset_unknown_breaker(self, client) -> None:
        response = await client.post("/health/breakers/nope/reset")
        assert response.status_code == 404

    async def test_root_endpoint(self, client) -> None:
        """루트 엔드포인트"""
        response = await client.get("/")
        assert response.status_code == 200
        assert "service" in response.json()


@pytest.mark.asyncio
class TestSearchAPI:
    async def test_search_opens_session(self, client) -> None:
        response = await _search(client)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["degraded"] is False
        assert data["view"]["item"]["id"] == "1"
        assert data["view"]["has_more"] is True
        assert "raw" not in data["view"]["item"]

    async def test_cache_hit(self, client) -> None:
        await _search(client)
        data = (await _search(client, user_id="u2")).json()
        assert data["status"] == "cache_hit"
        assert data["source"] == "cache"

    async def test_no_results_is_not_an_error(self, client, fake_provider) -> None:
        fake_provider.pages = {}
        response = await _search(client)
        assert response.status_code == 200
        assert response.json()["status"] == "no_results"
        assert response.json()["view"] is None

    async def test_upstream_rejection(self, client, fake_provider) -> None:
        fake_provider.errors = [UpstreamRejectedException("fake", 400)]
        response = await _search(client)
        assert response.status_code == 422
        assert response.json()["status"] == "rejected"

    async def test_upstream_failure_is_degraded(self, client, fake_provider) -> None:
        fake_provider.errors = [UpstreamFailureException("fake", "HTTP 502", 502)]
        response = await _search(client)
        assert response.status_code == 503
        assert response.json()["degraded"] is True

    async def test_contradictory_options(self, client) -> None:
        response = await _search(client, exclude_tags=["solo"], require_tags=["solo"])
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_QUERY"

    async def test_unknown_provider(self, client) -> None:
        response = await client.post("/api/v1/search", json={"user_id": "u1", "provider": "nope"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "UNKNOWN_PROVIDER"

    @pytest.mark.parametrize("user_id", ["", "bad id", "a" * 65])
    async def test_invalid_user_id(self, client, user_id) -> None:
        response = await client.post("/api/v1/search", json={"user_id": user_id, "query": "cats"})
        assert response.status_code == 422

    async def test_query_with_control_character(self, client) -> None:
        response = await client.post("/api/v1/search", json={"user_id": "u1", "query": "cats\x00"})
        assert response.status_code == 422

    async def test_random(self, client, fake_provider) -> None:
        fake_provider.default = [raw_post(i) for i in range(10, 30)]
        response = await client.post("/api/v1/random", json={"user_id": "u1", "count": 2})
        assert response.status_code == 200
        assert response.json()["view"]["kind"] == "random"
        assert response.json()["view"]["total"] == 2

    async def test_trending_invalid_timeframe(self, client) -> None:
        response = await client.post("/api/v1/trending", json={"user_id": "u1", "timeframe": "year"})
        assert response.status_code == 422

    async def test_open_post(self, client, fake_provider) -> None:
        fake_provider.posts = {"7": raw_post(7)}
        response = await client.get("/api/v1/posts/7", params={"user_id": "u1"})
        assert response.status_code == 200
        assert response.json()["view"]["kind"] == "single"

        missing = await client.get("/api/v1/posts/8", params={"user_id": "u1"})
        assert missing.json()["status"] == "no_results"

    async def test_autocomplete(self, client, fake_provider) -> None:
        fake_provider.suggestions = [{"name": "cat_ears", "value": "cat_ears", "type": "tag", "count": 3}]
        assert (await client.get("/api/v1/autocomplete", params={"q": "c"})).json() == {"suggestions": []}
        data = (await client.get("/api/v1/autocomplete", params={"q": "cat"})).json()
        assert data["suggestions"][0]["value"] == "cat_ears"


@pytest.mark.asyncio
class TestSessionAPI:
    async def test_navigate(self, client) -> None:
        await _search(client)

        response = await client.post("/api/v1/sessions/u1/navigate", json={"actor_id": "u1", "action": "next"})
        assert response.status_code == 200
        assert response.json()["view"]["index"] == 1

        response = await client.post("/api/v1/sessions/u1/navigate", json={"actor_id": "u1", "action": "next_page"})
        assert response.json()["view"]["page"] == 2

        response = await client.post(
            "/api/v1/sessions/u1/navigate", json={"actor_id": "u1", "action": "jump", "target_page": 1}
        )
        assert response.json()["view"]["page"] == 1

    async def test_ownership_violation(self, client) -> None:
        await _search(client)
        response = await client.post("/api/v1/sessions/u1/navigate", json={"actor_id": "u2", "action": "next"})
        assert response.status_code == 403
        assert response.json()["status"] == "ownership_violation"

        current = await client.get("/api/v1/sessions/u1")
        assert current.json()["index"] == 0

    async def test_degraded_page(self, client, fake_provider) -> None:
        await _search(client)
        fake_provider.errors = [UpstreamFailureException("fake", "HTTP 503", 503)]
        response = await client.post("/api/v1/sessions/u1/navigate", json={"actor_id": "u1", "action": "next_page"})
        assert response.status_code == 503
        assert response.json()["view"]["page"] == 1

    async def test_invalid_action(self, client) -> None:
        response = await client.post("/api/v1/sessions/u1/navigate", json={"actor_id": "u1", "action": "explode"})
        assert response.status_code == 422

    async def test_close_and_expired(self, client) -> None:
        await _search(client)
        closed = await client.delete("/api/v1/sessions/u1", params={"actor_id": "u1"})
        assert closed.json()["status"] == "closed"

        response = await client.post("/api/v1/sessions/u1/navigate", json={"actor_id": "u1", "action": "next"})
        assert response.status_code == 410
        assert (await client.get("/api/v1/sessions/u1")).status_code == 410

    async def test_expired_by_time(self, client, clock) -> None:
        await _search(client)
        clock.advance(601)
        response = await client.post("/api/v1/sessions/u1/navigate", json={"actor_id": "u1", "action": "prev"})
        assert response.status_code == 410
        assert response.json()["status"] == "session_expired"

    async def test_favorite_and_history(self, client) -> None:
        await _search(client)

        response = await client.post("/api/v1/sessions/u1/favorite", json={"actor_id": "u1"})
        assert response.json() == {"favorited": True}
        favorites = (await client.get("/api/v1/users/u1/favorites")).json()["favorites"]
        assert [f["id"] for f in favorites] == ["1"]

        history = (await client.get("/api/v1/users/u1/history")).json()["history"]
        assert [h["id"] for h in history] == ["1"]

    async def test_favorite_by_other_user_is_forbidden(self, client) -> None:
        await _search(client)

        response = await client.post("/api/v1/sessions/u1/favorite", json={"actor_id": "u2"})
        assert response.status_code == 403
        assert response.json()["error_code"] == "OWNERSHIP_VIOLATION"
        assert (await client.get("/api/v1/users/u2/favorites")).json()["favorites"] == []
        assert (await client.get("/api/v1/users/u1/favorites")).json()["favorites"] == []

    async def test_favorite_without_session(self, client) -> None:
        response = await client.post("/api/v1/sessions/ghost/favorite", json={"actor_id": "ghost"})
        assert response.status_code == 410


@pytest.mark.asyncio
class TestSettingsAPI:
    async def test_preferences(self, client) -> None:
        response = await client.patch("/api/v1/users/u1/preferences", json={"min_score": 10})
        assert response.status_code == 200
        assert response.json()["min_score"] == 10
        assert response.json()["ai_filter"] is True

        assert (await client.get("/api/v1/users/u1/preferences")).json()["min_score"] == 10
        assert (await client.delete("/api/v1/users/u1/preferences")).json()["min_score"] == 0

    async def test_invalid_preferences(self, client) -> None:
        response = await client.patch("/api/v1/users/u1/preferences", json={"results_per_page": 0})
        assert response.status_code == 422

    async def test_blacklist(self, client) -> None:
        added = (await client.post("/api/v1/users/u1/blacklist", json={"tags": ["Gore", "blood"]})).json()
        assert added == {"tags": ["blood", "gore"], "changed": ["gore", "blood"]}

        again = (await client.post("/api/v1/users/u1/blacklist", json={"tags": ["gore"]})).json()
        assert again["changed"] == []

        removed = (await client.post("/api/v1/users/u1/blacklist/remove", json={"tags": ["gore"]})).json()
        assert removed == {"tags": ["blood"], "changed": ["gore"]}

        cleared = (await client.delete("/api/v1/users/u1/blacklist")).json()
        assert cleared == {"tags": [], "changed": ["blood"]}

    async def test_blacklist_applies_to_search(self, client, fake_provider) -> None:
        fake_provider.pages = {1: [raw_post(1, tags=("gore",)), raw_post(2)]}
        await client.post("/api/v1/users/u1/blacklist", json={"tags": ["gore"]})

        data = (await _search(client)).json()
        assert data["view"]["item"]["id"] == "2"
        assert data["view"]["total"] == 1

    async def test_suggestions(self, client) -> None:
        data = (await client.get("/api/v1/blacklist/suggestions")).json()
        assert "gore" in data
