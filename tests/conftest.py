"""전역 테스트 설정

역할:
- 테스트 환경 구성
- 공통 Fake 주입 (시계, 프로바이더, 저장소)
- 외부 네트워크 호출 없음
"""

from __future__ import annotations

import os
import random
import sys
from pathlib import Path

import pytest


# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.engine.circuit_breaker import BreakerConfig, CircuitBreakerRegistry  # noqa: E402
from src.engine.classifier import TagClassifier  # noqa: E402
from src.engine.pipeline import SearchPipeline  # noqa: E402
from src.engine.resilience import ResilienceWrapper  # noqa: E402
from src.engine.ttl_cache import TTLCache  # noqa: E402
from src.services.impl.content_search_service import ContentSearchService  # noqa: E402
from src.services.impl.kv_store import MemoryKeyValueStore  # noqa: E402
from src.services.impl.preference_service import PreferenceService  # noqa: E402
from src.services.impl.session_store import SessionStore  # noqa: E402
from tests.helpers import FakeClock, FakeProvider  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def test_env() -> None:
    """테스트 환경 변수 설정 (세션 전역)"""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "INFO"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def classifier() -> TagClassifier:
    return TagClassifier()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryKeyValueStore:
    return MemoryKeyValueStore(max_entries_per_namespace=1000, clock=clock)


@pytest.fixture
def preference_service(memory_store, classifier, clock) -> PreferenceService:
    return PreferenceService(memory_store, classifier=classifier, clock=clock)


@pytest.fixture
def session_store(clock: FakeClock) -> SessionStore:
    return SessionStore(ttl_seconds=600, max_entries=100, clock=clock)


@pytest.fixture
def breaker_registry(clock: FakeClock) -> CircuitBreakerRegistry:
    config = BreakerConfig(failure_threshold=3, reset_timeout_s=60.0, call_timeout_s=1.0)
    return CircuitBreakerRegistry(profiles={}, default_config=config, clock=clock)


@pytest.fixture
def wrapper(clock: FakeClock, breaker_registry: CircuitBreakerRegistry) -> ResilienceWrapper:
    return ResilienceWrapper(TTLCache(max_size=100, clock=clock, name="test_search"), breaker_registry)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def pipeline(fake_provider, wrapper, preference_service, classifier) -> SearchPipeline:
    return SearchPipeline(
        {fake_provider.name: fake_provider},
        wrapper,
        preference_service,
        classifier=classifier,
        default_provider=fake_provider.name,
        rng=random.Random(7),
    )


@pytest.fixture
def service(pipeline, session_store, preference_service) -> ContentSearchService:
    return ContentSearchService(pipeline, session_store, preference_service, rng=random.Random(7))
