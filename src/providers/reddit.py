"""reddit public listing provider

Query text is a subreddit name. Listing endpoints are cursor based, so a page
is served by requesting ``limit * page`` posts (capped at 100) and slicing.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from src.core.config import settings
from src.core.logging import logger
from src.engine.classifier import TagClassifier
from src.schemas.content_schema import ContentItem, EffectiveSearchOptions, MediaKind, Rating

from .base import ProviderPage, ProviderQuery, to_int
from .http_client import SharedHttpClient, get_shared_http_client

BASE_URL = "https://www.reddit.com"
MAX_LISTING = 100
DEFAULT_SUBREDDIT = "all"
# 서브레딧 이름 규칙 (영문/숫자/밑줄, 2~21자)
SUBREDDIT_NAME = re.compile(r"[a-z0-9_]{2,21}")

# 정렬 키 → 리스팅 종류
SORT_LISTINGS = {
    "default": "hot",
    "score:desc": "top",
    "score:asc": "top",
    "id:desc": "new",
    "id:asc": "new",
    "random": "hot",
}

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")


def _unescape(url: Optional[str]) -> Optional[str]:
    return url.replace("&amp;", "&") if url else url


class RedditProvider:
    """reddit 서브레딧 리스팅 프로바이더"""

    name = "reddit"
    native_sorts = frozenset({"default"})

    def __init__(
        self,
        http_client: Optional[SharedHttpClient] = None,
        classifier: Optional[TagClassifier] = None,
        timeout_s: Optional[float] = None,
    ):
        self.http = http_client or get_shared_http_client()
        self.classifier = classifier or TagClassifier()
        self.timeout_s = timeout_s or settings.upstream_timeout_seconds

    @staticmethod
    def subreddit_of(query: str) -> str:
        text = (query or "").strip().lower()
        for prefix in ("/r/", "r/"):
            if text.startswith(prefix):
                text = text[len(prefix):]
        text = text.split()[0] if text else ""
        name = text.strip("/")
        if not SUBREDDIT_NAME.fullmatch(name):
            if name:
                logger.debug(f"[reddit] Invalid subreddit name, using /r/{DEFAULT_SUBREDDIT}")
            return DEFAULT_SUBREDDIT
        return name

    def build_query(self, options: EffectiveSearchOptions) -> ProviderQuery:
        listing = SORT_LISTINGS.get(options.sort, "hot")
        params: dict[str, Any] = {"listing": listing}
        if listing == "top":
            params["t"] = "all"
        return ProviderQuery(
            provider=self.name,
            text=self.subreddit_of(options.query),
            page=options.page,
            limit=min(options.limit, MAX_LISTING),
            sort=options.sort,
            params=params,
        )

    def build_random_query(self, options: EffectiveSearchOptions) -> Optional[ProviderQuery]:
        return None

    def build_trending_query(self, options: EffectiveSearchOptions, timeframe: str) -> Optional[ProviderQuery]:
        return ProviderQuery(
            provider=self.name,
            text="popular",
            page=options.page,
            limit=min(options.limit, MAX_LISTING),
            sort="score:desc",
            params={"listing": "top", "t": timeframe},
        )

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": settings.reddit_user_agent}

    async def fetch(self, query: ProviderQuery) -> ProviderPage:
        window = min(MAX_LISTING, query.limit * query.page)
        start = query.limit * (query.page - 1)
        total_pages = max(1, MAX_LISTING // query.limit)
        if start >= window:
            return ProviderPage(raw_items=[], limit=query.limit, total_pages=total_pages)

        listing = query.params.get("listing", "hot")
        params: dict[str, Any] = {"limit": window, "raw_json": 1}
        if "t" in query.params:
            params["t"] = query.params["t"]

        url = f"{BASE_URL}/r/{query.text}/{listing}.json"
        logger.info(f"[reddit] Fetching /r/{query.text}/{listing} | page={query.page} limit={query.limit}")
        data = await self.http.get_json(self.name, url, timeout_s=self.timeout_s, params=params, headers=self._headers())

        children = (data or {}).get("data", {}).get("children", []) if isinstance(data, dict) else []
        posts = [c.get("data") for c in children if isinstance(c, dict) and isinstance(c.get("data"), dict)]
        return ProviderPage(raw_items=posts[start:start + query.limit], limit=query.limit, total_pages=total_pages)

    def parse_item(self, raw: dict[str, Any]) -> Optional[ContentItem]:
        post_id = raw.get("id")
        if not post_id:
            return None

        tags = self.classifier.normalize_tags(
            [raw.get("subreddit") or "", raw.get("link_flair_text") or "", raw.get("post_hint") or ""]
        )

        width, height = 0, 0
        preview_url = None
        images = (raw.get("preview") or {}).get("images") or []
        if images:
            source = images[0].get("source") or {}
            width = to_int(source.get("width"))
            height = to_int(source.get("height"))
            preview_url = _unescape(source.get("url"))

        url = _unescape(raw.get("url")) or None
        kind = MediaKind.TEXT
        is_animated = False
        video = ((raw.get("media") or {}).get("reddit_video") or {})
        if raw.get("is_video") and video.get("fallback_url"):
            kind, is_animated = MediaKind.VIDEO, True
            url = video["fallback_url"]
        elif raw.get("is_gallery") or raw.get("gallery_data"):
            kind = MediaKind.GALLERY
        elif preview_url or (url or "").lower().endswith(IMAGE_EXTENSIONS):
            kind = MediaKind.IMAGE
            is_animated = (url or "").lower().endswith(".gif")

        return ContentItem(
            id=str(post_id),
            provider=self.name,
            tags=tags,
            score=to_int(raw.get("ups", raw.get("score"))),
            rating=Rating.EXPLICIT if raw.get("over_18") else Rating.SAFE,
            width=width,
            height=height,
            kind=kind,
            is_animated=is_animated,
            ai_generated=self.classifier.is_ai_generated(tags),
            quality=self.classifier.quality_of(tags, width, height),
            url=url,
            page_url=f"{BASE_URL}{raw['permalink']}" if raw.get("permalink") else None,
            preview_url=preview_url,
            title=raw.get("title") or "[No Title]",
            raw=raw,
        )

    async def fetch_by_id(self, item_id: str) -> Optional[dict[str, Any]]:
        fullname = item_id if item_id.startswith("t3_") else f"t3_{item_id}"
        data = await self.http.get_json(
            self.name, f"{BASE_URL}/by_id/{fullname}.json",
            timeout_s=self.timeout_s, params={"raw_json": 1}, headers=self._headers(),
        )
        children = (data or {}).get("data", {}).get("children", []) if isinstance(data, dict) else []
        if children and isinstance(children[0].get("data"), dict):
            return children[0]["data"]
        return None

    async def autocomplete(self, text: str) -> list[dict[str, Any]]:
        data = await self.http.get_json(
            self.name, f"{BASE_URL}/subreddits/search.json",
            timeout_s=self.timeout_s, params={"q": text, "limit": 25}, headers=self._headers(),
        )
        children = (data or {}).get("data", {}).get("children", []) if isinstance(data, dict) else []
        suggestions = []
        for child in children[:25]:
            sub = child.get("data") or {}
            name = sub.get("display_name")
            if not name:
                continue
            suggestions.append({
                "name": sub.get("display_name_prefixed") or f"r/{name}",
                "value": name,
                "type": "subreddit",
                "count": to_int(sub.get("subscribers")),
            })
        return suggestions
