"""Upstream content providers"""

from typing import Optional

from src.engine.classifier import TagClassifier

from .base import ContentProvider, ProviderPage, ProviderQuery
from .http_client import SharedHttpClient, get_shared_http_client, shutdown_shared_http_client
from .reddit import RedditProvider
from .rule34 import Rule34Provider


def build_default_providers(
    http_client: Optional[SharedHttpClient] = None,
    classifier: Optional[TagClassifier] = None,
) -> dict[str, ContentProvider]:
    """기본 프로바이더 구성 (이름 → 인스턴스)"""
    http_client = http_client or get_shared_http_client()
    classifier = classifier or TagClassifier()
    providers = [
        Rule34Provider(http_client=http_client, classifier=classifier),
        RedditProvider(http_client=http_client, classifier=classifier),
    ]
    return {p.name: p for p in providers}


__all__ = [
    "ContentProvider",
    "ProviderPage",
    "ProviderQuery",
    "SharedHttpClient",
    "get_shared_http_client",
    "shutdown_shared_http_client",
    "Rule34Provider",
    "RedditProvider",
    "build_default_providers",
]
