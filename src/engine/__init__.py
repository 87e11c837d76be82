"""Engine Layer - Resilience and Query/Filter Pipeline

This module provides the core engine layer, implementing:
- TTLCache: namespaced in-process cache with lazy expiry
- CircuitBreaker / CircuitBreakerRegistry: per-provider failure isolation
- ResilienceWrapper: cache-aside + breaker around upstream calls
- TagClassifier / ContentFilter: tag heuristics and local filtering
- SearchPipeline: options merge → provider query → fetch → filter → sort
- SearchResult / NavigationResult: standardized outcomes
"""

from .circuit_breaker import (
    BreakerConfig,
    CircuitBreaker,
    CircuitBreakerMetrics,
    CircuitBreakerRegistry,
    CircuitState,
)
from .classifier import TagClassifier
from .filters import ContentFilter
from .pipeline import SearchPipeline
from .resilience import ExecutionResult, ResilienceWrapper
from .result import (
    NavigationAction,
    NavigationResult,
    NavigationStatus,
    SearchOutcome,
    SearchResult,
    SearchStatus,
    SessionView,
)
from .strategy import ExecutionSource, ExecutionStrategy
from .ttl_cache import TTLCache

__all__ = [
    "TTLCache",
    "BreakerConfig",
    "CircuitBreaker",
    "CircuitBreakerMetrics",
    "CircuitBreakerRegistry",
    "CircuitState",
    "ResilienceWrapper",
    "ExecutionResult",
    "ExecutionSource",
    "ExecutionStrategy",
    "TagClassifier",
    "ContentFilter",
    "SearchPipeline",
    "SearchResult",
    "SearchStatus",
    "SearchOutcome",
    "NavigationAction",
    "NavigationResult",
    "NavigationStatus",
    "SessionView",
]
