"""Local filter / sort stage

Provider-side filtering is only an optimization; every rule is re-applied here
so the result is correct even when the provider ignores part of the query.
"""

import random
from typing import Iterable, Optional

from src.schemas.content_schema import ContentItem, EffectiveSearchOptions, Quality

from .classifier import TagClassifier


class ContentFilter:
    """필터 + 정렬"""

    def __init__(self, classifier: Optional[TagClassifier] = None, rng: Optional[random.Random] = None):
        self.classifier = classifier or TagClassifier()
        self._rng = rng or random.Random()

    def rejection_reason(self, item: ContentItem, options: EffectiveSearchOptions) -> Optional[str]:
        """항목이 걸러지는 첫 번째 이유 (통과 시 None)"""
        if item.score < options.min_score:
            return "min_score"
        if options.exclude_ai and item.ai_generated:
            return "ai_generated"
        if options.high_quality_only and item.quality != Quality.HIGH:
            return "not_high_quality"
        if options.exclude_low_quality and item.quality == Quality.LOW:
            return "low_quality"

        tags = {t.lower() for t in item.tags}
        if options.exclude_tags and tags.intersection(options.exclude_tags):
            return "excluded_tag"
        if options.require_tags and not tags.issuperset(options.require_tags):
            return "missing_required_tag"

        if options.rating is not None and item.rating != options.rating:
            return "rating"

        if options.min_width and item.width < options.min_width:
            return "min_width"
        if options.max_width and item.width > options.max_width:
            return "max_width"
        if options.min_height and item.height < options.min_height:
            return "min_height"
        if options.max_height and item.height > options.max_height:
            return "max_height"

        if not self.classifier.matches_content_type(item, options.content_type):
            return "content_type"
        return None

    def apply(self, items: Iterable[ContentItem], options: EffectiveSearchOptions) -> list[ContentItem]:
        return [item for item in items if self.rejection_reason(item, options) is None]

    def sort(self, items: list[ContentItem], sort_key: str) -> list[ContentItem]:
        """정렬 ("default" = 업스트림 순서 유지)"""
        if sort_key == "score:desc":
            return sorted(items, key=lambda i: i.score, reverse=True)
        if sort_key == "score:asc":
            return sorted(items, key=lambda i: i.score)
        if sort_key == "id:desc":
            return sorted(items, key=lambda i: i.sort_id, reverse=True)
        if sort_key == "id:asc":
            return sorted(items, key=lambda i: i.sort_id)
        if sort_key == "random":
            shuffled = list(items)
            self._rng.shuffle(shuffled)
            return shuffled
        return list(items)
