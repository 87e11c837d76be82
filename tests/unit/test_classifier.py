"""TagClassifier 휴리스틱 테스트."""

import pytest

from src.engine.classifier import TagClassifier
from src.schemas.content_schema import ContentType, MediaKind, Quality
from tests.helpers import make_item


class TestTagNormalization:
    def test_translation_table(self, classifier):
        assert classifier.normalize_tag("Blonde Hair") == "blonde_hair"
        assert classifier.normalize_tag("big   breasts") == "large_breasts"

    def test_whitespace_becomes_underscore(self, classifier):
        assert classifier.normalize_tag("  Red Scarf ") == "red_scarf"
        assert classifier.normalize_tag("") == ""

    def test_normalize_tags_dedupes_in_order(self, classifier):
        assert classifier.normalize_tags(["B", "a", "b", "", "blue eyes"]) == ("b", "a", "blue_eyes")

    def test_tokenize_query_comma_vs_space(self, classifier):
        assert classifier.tokenize_query("blonde hair, cat ears") == ["blonde_hair", "cat_ears"]
        assert classifier.tokenize_query("Cat_Ears solo") == ["cat_ears", "solo"]
        assert classifier.tokenize_query("   ") == []


class TestClassification:
    def test_ai_generated(self, classifier):
        assert classifier.is_ai_generated(["1girl", "AI_Generated"])
        assert not classifier.is_ai_generated(["1girl"])

    @pytest.mark.parametrize(
        "tags,width,height,expected",
        [
            (("lowres", "absurdres"), 4000, 3000, Quality.LOW),
            (("masterpiece",), 100, 100, Quality.HIGH),
            ((), 1920, 500, Quality.HIGH),
            ((), 800, 600, Quality.NORMAL),
        ],
    )
    def test_quality(self, classifier, tags, width, height, expected):
        assert classifier.quality_of(tags, width, height) == expected

    def test_detect_kind(self, classifier):
        assert classifier.detect_kind([], "https://x.test/a.MP4?x=1") == (MediaKind.VIDEO, True)
        assert classifier.detect_kind([], "https://x.test/a.gif") == (MediaKind.IMAGE, True)
        assert classifier.detect_kind(["animated"], "https://x.test/a.png") == (MediaKind.IMAGE, True)
        assert classifier.detect_kind([], None) == (MediaKind.IMAGE, False)

    def test_content_type_matching(self, classifier):
        comic = make_item("1", tags=("manga",))
        video = make_item("2", kind=MediaKind.VIDEO, is_animated=True)
        photo = make_item("3", tags=("cosplay",))

        assert classifier.matches_content_type(comic, ContentType.COMIC)
        assert classifier.is_comic(comic.tags)
        assert classifier.matches_content_type(video, ContentType.ANIMATED)
        assert classifier.matches_content_type(photo, ContentType.PHOTO)
        assert not classifier.matches_content_type(photo, ContentType.COMIC)
        assert classifier.matches_content_type(photo, None)

    def test_tags_for_content_type_sorted(self, classifier):
        tags = classifier.tags_for_content_type(ContentType.COMIC)
        assert tags == sorted(tags)
        assert "comic" in tags


def test_custom_vocabulary_overrides_resource():
    classifier = TagClassifier({"ai_tags": ["robot_made"], "translations": {"Kitty": "cat"}})
    assert classifier.is_ai_generated(["robot_made"])
    assert not classifier.is_ai_generated(["ai_generated"])
    assert classifier.normalize_tag("kitty") == "cat"
    assert classifier.quality_of([], 10, 10) == Quality.NORMAL


def test_blacklist_suggestions_include_ai_and_low_quality(classifier):
    suggestions = classifier.blacklist_suggestions()
    assert suggestions[0] == "gore"
    assert "ai_generated" in suggestions
    assert "lowres" in suggestions
    assert len(suggestions) == len(set(suggestions))
