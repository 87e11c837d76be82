"""Rule34Provider 쿼리 생성 / 파싱 테스트 (HTTP 는 AsyncMock)"""

from unittest.mock import AsyncMock

import pytest

from src.providers.rule34 import API_URL, AUTOCOMPLETE_URL, Rule34Provider
from src.schemas.content_schema import ContentType, EffectiveSearchOptions, MediaKind, Quality, Rating
from tests.fixtures import RULE34_AUTOCOMPLETE, RULE34_POSTS


@pytest.fixture
def http():
    client = AsyncMock()
    client.get_json.return_value = []
    return client


@pytest.fixture
def provider(http, classifier):
    return Rule34Provider(http_client=http, classifier=classifier, credentials=(), timeout_s=5.0)


class TestBuildTags:
    def test_full_query(self, provider):
        options = EffectiveSearchOptions(
            query="cat ears, blonde hair",
            rating=Rating.SAFE,
            exclude_ai=False,
            exclude_low_quality=False,
            min_score=100,
            exclude_tags=("gore",),
            require_tags=("solo",),
            sort="score:desc",
        )
        assert provider.build_tags(options) == "cat_ears blonde_hair rating:safe score:>=100 -gore solo sort:score:desc"

    def test_ai_and_low_quality_exclusions(self, provider):
        tags = provider.build_tags(EffectiveSearchOptions(sort="default")).split()
        assert "-ai_generated" in tags
        assert "-lowres" in tags
        assert not any(t.startswith("sort:") for t in tags)

    def test_content_type_and_dimensions(self, provider):
        options = EffectiveSearchOptions(
            content_type=ContentType.COMIC, min_width=1000, min_height=800,
            exclude_ai=False, exclude_low_quality=False, sort="default",
        )
        assert provider.build_tags(options) == (
            "width:>=1000 height:>=800 ( comic ~ doujinshi ~ manga ~ multi-panel ~ page_number )"
        )

    def test_limit_is_capped(self, provider):
        query = provider.build_query(EffectiveSearchOptions(limit=500, page=3))
        assert query.limit == 100
        assert query.page == 3
        assert query.provider == "rule34"


class TestParse:
    def test_high_resolution_image(self, provider):
        item = provider.parse_item(RULE34_POSTS[0])
        assert item.id == "9001"
        assert item.tags == ("cat_ears", "blonde_hair", "highres")
        assert item.kind == MediaKind.IMAGE
        assert item.quality == Quality.HIGH
        assert item.rating == Rating.EXPLICIT
        assert item.page_url.endswith("id=9001")
        assert item.preview_url == "https://example.test/thumbnails/9001.jpg"

    def test_ai_generated(self, provider):
        item = provider.parse_item(RULE34_POSTS[1])
        assert item.ai_generated is True
        assert item.preview_url == "https://example.test/samples/9002.jpg"

    def test_video_and_gif(self, provider):
        video = provider.parse_item(RULE34_POSTS[2])
        gif = provider.parse_item(RULE34_POSTS[3])

        assert (video.kind, video.is_animated, video.rating) == (MediaKind.VIDEO, True, Rating.SAFE)
        assert (gif.kind, gif.is_animated, gif.quality) == (MediaKind.IMAGE, True, Quality.LOW)
        assert gif.rating == Rating.EXPLICIT

    def test_missing_id(self, provider):
        assert provider.parse_item({"score": 1}) is None

    def test_loose_numbers(self, provider):
        item = provider.parse_item({"id": 1, "score": "abc", "width": None, "tags": None})
        assert item.score == 0
        assert item.width == 0
        assert item.tags == ()


class TestFetch:
    @pytest.mark.asyncio
    async def test_search_params(self, provider, http):
        http.get_json.return_value = RULE34_POSTS + ["junk"]
        query = provider.build_query(EffectiveSearchOptions(query="cat_ears", limit=4, page=2))

        page = await provider.fetch(query)

        assert len(page.raw_items) == 4
        assert page.has_more is True
        args, kwargs = http.get_json.call_args
        assert args == ("rule34", API_URL)
        assert kwargs["params"]["pid"] == 1
        assert kwargs["params"]["limit"] == 4
        assert "user_id" not in kwargs["params"]
        assert kwargs["timeout_s"] == 5.0

    @pytest.mark.asyncio
    async def test_credentials_are_sent(self, http, classifier):
        provider = Rule34Provider(http_client=http, classifier=classifier, credentials=("42", "secret"))
        await provider.fetch(provider.build_query(EffectiveSearchOptions()))
        params = http.get_json.call_args.kwargs["params"]
        assert params["user_id"] == "42"
        assert params["api_key"] == "secret"

    @pytest.mark.asyncio
    async def test_non_list_body(self, provider, http):
        http.get_json.return_value = None
        page = await provider.fetch(provider.build_query(EffectiveSearchOptions()))
        assert page.raw_items == []
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_fetch_by_id(self, provider, http):
        http.get_json.return_value = [RULE34_POSTS[0]]
        assert (await provider.fetch_by_id("9001"))["id"] == 9001
        assert http.get_json.call_args.kwargs["params"]["id"] == "9001"

        http.get_json.return_value = []
        assert await provider.fetch_by_id("1") is None

    @pytest.mark.asyncio
    async def test_autocomplete(self, provider, http):
        http.get_json.return_value = RULE34_AUTOCOMPLETE
        suggestions = await provider.autocomplete("cat")

        assert http.get_json.call_args.args[1] == AUTOCOMPLETE_URL
        assert suggestions == [
            {"name": "cat_ears (120345)", "value": "cat_ears", "type": "general", "count": 0},
            {"name": "cat_tail (56012)", "value": "cat_tail", "type": "tag", "count": 0},
        ]
