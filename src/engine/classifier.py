"""Tag Classifier - best-effort heuristics over provider tags

Classification vocabulary (AI tags, quality tags, content-type tags, tag
translations) is loaded from resources/classification/tags.yaml so it can be
tuned without code changes. Results are heuristics, not guarantees.
"""

import re
from typing import Any, Iterable, Optional

from src.schemas.content_schema import ContentItem, ContentType, MediaKind, Quality
from src.utils.resource_loader import load_classification_vocabulary

_WHITESPACE = re.compile(r"\s+")


class TagClassifier:
    """태그 기반 분류기

    Usage:
        classifier = TagClassifier()
        classifier.is_ai_generated(["ai_generated", "1girl"])  # True
        classifier.normalize_tag("Blonde Hair")  # "blonde_hair"
    """

    def __init__(self, vocabulary: Optional[dict[str, Any]] = None):
        vocab = vocabulary if vocabulary is not None else load_classification_vocabulary()
        self.ai_tags: frozenset = frozenset(vocab.get("ai_tags", ()))
        self.high_quality_tags: frozenset = frozenset(vocab.get("high_quality_tags", ()))
        self.low_quality_tags: frozenset = frozenset(vocab.get("low_quality_tags", ()))
        self.content_type_tags: dict[str, frozenset] = {
            k: frozenset(v) for k, v in (vocab.get("content_type_tags") or {}).items()
        }
        self.video_extensions: tuple = tuple(vocab.get("video_extensions", (".mp4", ".webm")))
        self.animated_extensions: tuple = tuple(vocab.get("animated_extensions", (".gif",)))
        self.high_res_min_width: int = int(vocab.get("high_res_min_width", 1920))
        self.high_res_min_height: int = int(vocab.get("high_res_min_height", 1080))
        self.translations: dict[str, str] = {
            k.lower(): v for k, v in (vocab.get("translations") or {}).items()
        }
        self._suggestions: list[str] = list(vocab.get("blacklist_suggestions", []))

    # --- 태그 정규화 ---

    def normalize_tag(self, tag: str) -> str:
        """사용자 입력 태그 → 프로바이더 표기 (소문자, 공백 → '_')"""
        if not tag:
            return ""
        cleaned = _WHITESPACE.sub(" ", tag.strip().lower())
        if cleaned in self.translations:
            return self.translations[cleaned]
        return cleaned.replace(" ", "_")

    def normalize_tags(self, tags: Iterable[str]) -> tuple[str, ...]:
        """정규화 + 빈 값 제거 + 중복 제거 (순서 유지)"""
        seen: dict[str, None] = {}
        for tag in tags or ():
            normalized = self.normalize_tag(tag)
            if normalized:
                seen.setdefault(normalized, None)
        return tuple(seen)

    def tokenize_query(self, query: str) -> list[str]:
        """자유 입력 쿼리 → 태그 목록

        쉼표가 있으면 쉼표 단위로 태그를 구분("blonde hair, blue eyes"),
        없으면 공백 단위로 구분합니다.
        """
        if not query or not query.strip():
            return []
        if "," in query:
            return [t for t in (self.normalize_tag(p) for p in query.split(",")) if t]
        return [t.lower() for t in query.split()]

    # --- 분류 ---

    def is_ai_generated(self, tags: Iterable[str]) -> bool:
        return any(t.lower() in self.ai_tags for t in tags)

    def is_high_resolution(self, width: int, height: int) -> bool:
        return width >= self.high_res_min_width or height >= self.high_res_min_height

    def quality_of(self, tags: Iterable[str], width: int = 0, height: int = 0) -> Quality:
        """품질 추정 (저품질 태그가 우선)"""
        lowered = {t.lower() for t in tags}
        if lowered & self.low_quality_tags:
            return Quality.LOW
        if lowered & self.high_quality_tags or self.is_high_resolution(width, height):
            return Quality.HIGH
        return Quality.NORMAL

    def detect_kind(self, tags: Iterable[str], file_url: Optional[str] = None) -> tuple[MediaKind, bool]:
        """미디어 종류 추정

        Returns:
            (kind, is_animated)
        """
        url = (file_url or "").lower().split("?", 1)[0]
        if url.endswith(self.video_extensions):
            return MediaKind.VIDEO, True
        lowered = {t.lower() for t in tags}
        if url.endswith(self.animated_extensions) or "animated" in lowered:
            return MediaKind.IMAGE, True
        return MediaKind.IMAGE, False

    def is_comic(self, tags: Iterable[str]) -> bool:
        return bool({t.lower() for t in tags} & self.content_type_tags.get(ContentType.COMIC.value, frozenset()))

    def matches_content_type(self, item: ContentItem, content_type: Optional[ContentType]) -> bool:
        if content_type is None:
            return True
        if content_type == ContentType.ANIMATED and (item.is_animated or item.kind == MediaKind.VIDEO):
            return True
        vocab = self.content_type_tags.get(content_type.value, frozenset())
        return any(t.lower() in vocab for t in item.tags)

    def tags_for_content_type(self, content_type: ContentType) -> list[str]:
        return sorted(self.content_type_tags.get(content_type.value, frozenset()))

    def blacklist_suggestions(self) -> list[str]:
        """차단 추천 태그 (일반 + AI + 저품질)"""
        merged = dict.fromkeys(self._suggestions)
        merged.update(dict.fromkeys(sorted(self.ai_tags)))
        merged.update(dict.fromkeys(sorted(self.low_quality_tags)))
        return list(merged)
