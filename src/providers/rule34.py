"""rule34 (booru dapi) provider"""

from __future__ import annotations

from typing import Any, Optional

from src.core.config import settings
from src.core.logging import logger, sanitize_for_log
from src.engine.classifier import TagClassifier
from src.schemas.content_schema import ContentItem, EffectiveSearchOptions, Rating

from .base import ProviderPage, ProviderQuery, to_int
from .http_client import SharedHttpClient, get_shared_http_client

API_URL = "https://api.rule34.xxx/index.php"
AUTOCOMPLETE_URL = "https://api.rule34.xxx/autocomplete.php"
POST_URL = "https://rule34.xxx/index.php?page=post&s=view&id={id}"

MAX_LIMIT = 100
MAX_AUTOCOMPLETE = 25


class Rule34Provider:
    """rule34 태그 검색 프로바이더

    - 페이지는 0부터 시작 (pid = page - 1)
    - 태그 메타 문법: rating:X, score:>=N, width:>=N, ( a ~ b ), -tag, sort:X
    """

    name = "rule34"
    native_sorts = frozenset({"score:desc", "score:asc", "id:desc", "id:asc"})

    def __init__(
        self,
        http_client: Optional[SharedHttpClient] = None,
        classifier: Optional[TagClassifier] = None,
        credentials: Optional[tuple[str, str]] = None,
        timeout_s: Optional[float] = None,
    ):
        self.http = http_client or get_shared_http_client()
        self.classifier = classifier or TagClassifier()
        self.credentials = credentials if credentials is not None else settings.rule34_credentials()
        self.timeout_s = timeout_s or settings.upstream_timeout_seconds

    def build_tags(self, options: EffectiveSearchOptions) -> str:
        """옵션 → rule34 태그 문자열"""
        tags: list[str] = list(self.classifier.tokenize_query(options.query))

        if options.rating is not None and options.rating != Rating.UNKNOWN:
            tags.append(f"rating:{options.rating.value}")

        if options.exclude_ai:
            tags.extend(f"-{t}" for t in sorted(self.classifier.ai_tags))

        if options.min_score > 0:
            tags.append(f"score:>={options.min_score}")
        if options.min_width > 0:
            tags.append(f"width:>={options.min_width}")
        if options.min_height > 0:
            tags.append(f"height:>={options.min_height}")

        if options.content_type is not None:
            type_tags = self.classifier.tags_for_content_type(options.content_type)
            if type_tags:
                tags.append(f"( {' ~ '.join(type_tags)} )")

        if options.high_quality_only and self.classifier.high_quality_tags:
            tags.append(f"( {' ~ '.join(sorted(self.classifier.high_quality_tags))} )")
        if options.exclude_low_quality:
            tags.extend(f"-{t}" for t in sorted(self.classifier.low_quality_tags))

        tags.extend(f"-{t}" for t in options.exclude_tags)
        tags.extend(options.require_tags)

        if options.sort and options.sort != "default":
            tags.append(f"sort:{options.sort}")

        return " ".join(tags)

    def build_query(self, options: EffectiveSearchOptions) -> ProviderQuery:
        return ProviderQuery(
            provider=self.name,
            text=self.build_tags(options),
            page=options.page,
            limit=min(options.limit, MAX_LIMIT),
            sort=options.sort,
        )

    def build_random_query(self, options: EffectiveSearchOptions) -> Optional[ProviderQuery]:
        return None

    def build_trending_query(self, options: EffectiveSearchOptions, timeframe: str) -> Optional[ProviderQuery]:
        return None

    def _auth_params(self) -> dict[str, str]:
        if not self.credentials:
            return {}
        user_id, api_key = self.credentials
        return {"user_id": user_id, "api_key": api_key}

    async def fetch(self, query: ProviderQuery) -> ProviderPage:
        params = {
            "page": "dapi",
            "s": "post",
            "q": "index",
            "limit": query.limit,
            "pid": max(0, query.page - 1),
            "tags": query.text,
            "json": 1,
            **self._auth_params(),
        }
        logger.info(f"[rule34] Searching: '{sanitize_for_log(query.text)}' | page={query.page} limit={query.limit}")

        data = await self.http.get_json(self.name, API_URL, timeout_s=self.timeout_s, params=params)
        if not isinstance(data, list):
            return ProviderPage(raw_items=[], limit=query.limit)
        return ProviderPage(raw_items=[d for d in data if isinstance(d, dict)], limit=query.limit)

    def parse_item(self, raw: dict[str, Any]) -> Optional[ContentItem]:
        post_id = raw.get("id")
        if post_id is None:
            return None

        tags = tuple(t for t in str(raw.get("tags") or "").split() if t)
        width = to_int(raw.get("width"))
        height = to_int(raw.get("height"))
        file_url = raw.get("file_url") or None
        kind, is_animated = self.classifier.detect_kind(tags, file_url)

        return ContentItem(
            id=str(post_id),
            provider=self.name,
            tags=tags,
            score=to_int(raw.get("score")),
            rating=Rating.parse(raw.get("rating")),
            width=width,
            height=height,
            kind=kind,
            is_animated=is_animated,
            ai_generated=self.classifier.is_ai_generated(tags),
            quality=self.classifier.quality_of(tags, width, height),
            url=file_url,
            page_url=POST_URL.format(id=post_id),
            preview_url=raw.get("preview_url") or raw.get("sample_url") or None,
            raw=raw,
        )

    async def fetch_by_id(self, item_id: str) -> Optional[dict[str, Any]]:
        params = {"page": "dapi", "s": "post", "q": "index", "id": item_id, "json": 1, **self._auth_params()}
        data = await self.http.get_json(self.name, API_URL, timeout_s=self.timeout_s, params=params)
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return data[0]
        return None

    async def autocomplete(self, text: str) -> list[dict[str, Any]]:
        data = await self.http.get_json(self.name, AUTOCOMPLETE_URL, timeout_s=self.timeout_s, params={"q": text})
        if not isinstance(data, list):
            return []
        suggestions = []
        for entry in data[:MAX_AUTOCOMPLETE]:
            if not isinstance(entry, dict):
                continue
            suggestions.append({
                "name": entry.get("label") or entry.get("value") or "",
                "value": entry.get("value") or entry.get("label") or "",
                "type": entry.get("type") or "tag",
                "count": to_int(entry.get("count")),
            })
        return suggestions
