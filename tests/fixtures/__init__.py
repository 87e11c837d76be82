"""테스트 자산(데이터) 레이어

규칙:
- 로직 없음 (단순 dict/list/primitive)
- 엔진/네트워크 의존 없음
"""

from .raw_posts import (
    REDDIT_LISTING,
    REDDIT_POST_BY_ID,
    RULE34_AUTOCOMPLETE,
    RULE34_POSTS,
    SUBREDDIT_SEARCH,
)

__all__ = [
    "RULE34_POSTS",
    "RULE34_AUTOCOMPLETE",
    "REDDIT_LISTING",
    "REDDIT_POST_BY_ID",
    "SUBREDDIT_SEARCH",
]
