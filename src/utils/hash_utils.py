"""해싱 유틸리티"""
import hashlib
import json
from typing import Any


def hash_string(text: str) -> str:
    """
    문자열을 MD5 해시로 변환

    Args:
        text: 해시할 문자열

    Returns:
        MD5 해시 문자열
    """
    return hashlib.md5(text.encode()).hexdigest()


def generate_cache_key(namespace: str, provider: str, params: dict[str, Any]) -> str:
    """
    파라미터로 캐시 키 생성 (키 순서와 무관하게 동일한 키)

    Args:
        namespace: 네임스페이스 (search, autocomplete, post)
        provider: 프로바이더 이름
        params: 요청 파라미터

    Returns:
        "{namespace}:{provider}:{md5}"
    """
    hashed = hash_string(json.dumps(params, sort_keys=True, default=str))
    return f"{namespace}:{provider}:{hashed}"
