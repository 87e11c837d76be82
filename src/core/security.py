"""
보안 미들웨어 및 입력 검증 함수
"""

import re
from typing import Iterable, Optional

from fastapi import Request

from src.core.logging import logger, sanitize_for_log


class SecurityValidator:
    """입력 보안 검증"""

    MAX_QUERY_LENGTH = 500
    MAX_USER_ID_LENGTH = 64
    MAX_TAG_LENGTH = 100
    MAX_TAGS = 50

    # 제어 문자 (태그 문법의 ~ ( ) : >= 등은 허용)
    DANGEROUS_CHARS = ['\0', '\n', '\r', '\t', '\x1b']
    USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.:@-]+$")

    @staticmethod
    def validate_query(query: Optional[str]) -> bool:
        """검색어 검증 (빈 검색어는 전체 탐색으로 허용)

        Raises:
            ValueError: 유효하지 않은 입력
        """
        if not query:
            return True

        if len(query) > SecurityValidator.MAX_QUERY_LENGTH:
            raise ValueError(f"query must be at most {SecurityValidator.MAX_QUERY_LENGTH} characters")

        for char in SecurityValidator.DANGEROUS_CHARS:
            if char in query:
                logger.warning(f"Control character in query: {sanitize_for_log(repr(char))}")
                raise ValueError("query contains a forbidden character")

        return True

    @staticmethod
    def validate_user_id(user_id: str) -> bool:
        """사용자 id 검증

        Raises:
            ValueError: 비어 있거나 허용되지 않는 문자 포함
        """
        if not user_id:
            raise ValueError("user id is required")
        if len(user_id) > SecurityValidator.MAX_USER_ID_LENGTH:
            raise ValueError(f"user id must be at most {SecurityValidator.MAX_USER_ID_LENGTH} characters")
        if not SecurityValidator.USER_ID_PATTERN.match(user_id):
            raise ValueError("user id contains a forbidden character")
        return True

    @staticmethod
    def validate_tags(tags: Iterable[str]) -> bool:
        tags = list(tags)
        if len(tags) > SecurityValidator.MAX_TAGS:
            raise ValueError(f"at most {SecurityValidator.MAX_TAGS} tags are allowed")
        for tag in tags:
            if len(tag) > SecurityValidator.MAX_TAG_LENGTH:
                raise ValueError(f"tag must be at most {SecurityValidator.MAX_TAG_LENGTH} characters")
            SecurityValidator.validate_query(tag)
        return True


async def log_request(request: Request) -> None:
    """요청 로깅 (민감 정보 제외)

    Args:
        request: FastAPI Request 객체
    """
    method = request.method
    path = request.url.path

    query_params = {}
    for key, value in request.query_params.items():
        if not is_safe_for_logging(key):
            continue
        query_params[key] = sanitize_for_log(str(value), max_length=50)

    if query_params:
        logger.debug(f"{method} {path}?{query_params}")
    else:
        logger.debug(f"{method} {path}")


def is_safe_for_logging(value: Optional[str]) -> bool:
    """로깅 안전성 확인

    Args:
        value: 확인할 값

    Returns:
        로깅 가능 여부
    """
    if value is None:
        return True

    sensitive_keywords = ['password', 'token', 'key', 'secret', 'api', 'auth']

    for keyword in sensitive_keywords:
        if keyword.lower() in str(value).lower():
            return False

    return True
