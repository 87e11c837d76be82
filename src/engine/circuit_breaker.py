"""Circuit Breaker + Metrics tracking per upstream provider."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from src.core.config import settings
from src.core.exceptions import CircuitOpenException, UpstreamTimeoutException
from src.core.logging import logger
from src.engine.strategy import ExecutionStrategy

Clock = Callable[[], float]

MAX_STATE_CHANGES = 20


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class BreakerConfig:
    """프로바이더별 회로차단 프로필

    Attributes:
        failure_threshold: 회로 개방 임계값 (연속 실패 횟수)
        reset_timeout_s: OPEN 유지 시간 (초) - 경과 후 HALF_OPEN 시도
        call_timeout_s: 1회 호출 타임아웃 (초)
    """

    failure_threshold: int = 3
    reset_timeout_s: float = 60.0
    call_timeout_s: float = 15.0

    @classmethod
    def from_settings(cls) -> "BreakerConfig":
        return cls(
            failure_threshold=settings.breaker_failure_threshold,
            reset_timeout_s=settings.breaker_reset_timeout_seconds,
            call_timeout_s=settings.upstream_timeout_seconds,
        )


DEFAULT_BREAKER_PROFILES: dict[str, BreakerConfig] = {
    "rule34": BreakerConfig(failure_threshold=3, reset_timeout_s=60.0, call_timeout_s=15.0),
    "reddit": BreakerConfig(failure_threshold=3, reset_timeout_s=30.0, call_timeout_s=10.0),
}


@dataclass
class CircuitBreakerMetrics:
    """회로차단 메트릭 추적."""

    total_calls: int = 0
    successes: int = 0
    failures: int = 0
    timeouts: int = 0
    rejections: int = 0  # 업스트림 4xx (집계 제외)
    short_circuits: int = 0  # OPEN/HALF_OPEN 으로 시도하지 않은 호출
    fallbacks: int = 0
    state_changes: deque = field(default_factory=lambda: deque(maxlen=MAX_STATE_CHANGES))

    def record_state_change(self, old: CircuitState, new: CircuitState, at: float, reason: str) -> None:
        self.state_changes.append({"from": old.value, "to": new.value, "at": at, "reason": reason})

    @property
    def success_rate(self) -> float:
        """성공률 (0.0~1.0)."""
        attempted = self.successes + self.failures
        return self.successes / attempted if attempted > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_calls": self.total_calls,
            "successes": self.successes,
            "failures": self.failures,
            "timeouts": self.timeouts,
            "rejections": self.rejections,
            "short_circuits": self.short_circuits,
            "fallbacks": self.fallbacks,
            "success_rate": round(self.success_rate, 4),
            "state_changes": list(self.state_changes),
        }

    def __repr__(self) -> str:
        return (
            f"Metrics(calls={self.total_calls}, ok={self.successes}, fail={self.failures}, "
            f"timeout={self.timeouts}, short={self.short_circuits}, rate={self.success_rate:.1%})"
        )


class CircuitBreaker:
    """프로바이더 단위 Circuit Breaker (CLOSED → OPEN → HALF_OPEN → CLOSED).

    - 연속 실패가 임계값에 도달하면 회로 개방 (호출 차단)
    - 개방 후 reset_timeout_s 경과 시 HALF_OPEN: 단 1회 시험 호출
    - 시험 호출 성공 → CLOSED, 실패 → OPEN (opened_at 갱신)
    - 시험 호출 진행 중 다른 호출은 OPEN과 동일하게 거절

    상태 확인과 전이는 await 없이 한 번에 수행되므로 같은 이벤트 루프의
    동시 호출에 대해 원자적입니다.
    """

    def __init__(
        self,
        name: str,
        config: Optional[BreakerConfig] = None,
        clock: Optional[Clock] = None,
        strategy: Optional[ExecutionStrategy] = None,
    ) -> None:
        self.name = name
        self.config = config or BreakerConfig.from_settings()
        self._clock: Clock = clock or time.monotonic
        self._strategy = strategy or ExecutionStrategy()

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at: Optional[float] = None
        self._trial_in_flight = False
        self.metrics = CircuitBreakerMetrics()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def opened_at(self) -> Optional[float]:
        return self._opened_at

    def _transition(self, new_state: CircuitState, reason: str) -> None:
        old = self._state
        if old == new_state:
            return
        self._state = new_state
        self.metrics.record_state_change(old, new_state, self._clock(), reason)
        if new_state == CircuitState.OPEN:
            logger.warning(
                f"[CIRCUIT_BREAKER] {self.name}: {old.value.upper()} -> OPEN ({reason}). "
                f"Calls blocked for {self.config.reset_timeout_s}s"
            )
        else:
            logger.info(f"[CIRCUIT_BREAKER] {self.name}: {old.value.upper()} -> {new_state.value.upper()} ({reason})")

    def _open(self, reason: str) -> None:
        self._opened_at = self._clock()
        self._trial_in_flight = False
        self._transition(CircuitState.OPEN, reason)

    def get_remaining_open_time(self) -> float:
        """회로 개방 남은 시간 (초)."""
        if self._state != CircuitState.OPEN or self._opened_at is None:
            return 0.0
        return max(0.0, self._opened_at + self.config.reset_timeout_s - self._clock())

    def try_acquire(self) -> bool:
        """호출 허가 여부 판단 (필요 시 OPEN → HALF_OPEN 전이)"""
        if self._state == CircuitState.CLOSED:
            return True

        if self._state == CircuitState.OPEN:
            if self.get_remaining_open_time() > 0.0:
                return False
            self._transition(CircuitState.HALF_OPEN, "cool-down elapsed")
            self._trial_in_flight = True
            return True

        # HALF_OPEN: 시험 호출은 1건만
        if self._trial_in_flight:
            return False
        self._trial_in_flight = True
        return True

    def record_success(self) -> None:
        """성공 기록 → 회로 닫기."""
        self.metrics.successes += 1
        self._consecutive_failures = 0
        if self._state == CircuitState.HALF_OPEN:
            self._trial_in_flight = False
            self._opened_at = None
            self._transition(CircuitState.CLOSED, "trial call succeeded")

    def record_failure(self, reason: str = "") -> None:
        """실패 기록 → 임계값 도달 시 회로 개방."""
        self.metrics.failures += 1
        self._consecutive_failures += 1

        if self._state == CircuitState.HALF_OPEN:
            self._open(f"trial call failed: {reason}" if reason else "trial call failed")
        elif self._state == CircuitState.CLOSED and self._consecutive_failures >= self.config.failure_threshold:
            self._open(f"failures={self._consecutive_failures} >= {self.config.failure_threshold}")

    def record_rejection(self) -> None:
        """업스트림이 쿼리를 거절 (4xx) - 응답은 받았으므로 상태상 성공으로 처리"""
        self.metrics.rejections += 1
        self._consecutive_failures = 0
        if self._state == CircuitState.HALF_OPEN:
            self._trial_in_flight = False
            self._opened_at = None
            self._transition(CircuitState.CLOSED, "trial call answered")

    def _release_trial(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._trial_in_flight = False

    async def call(self, operation: Callable[[], Awaitable[Any]], timeout_s: Optional[float] = None) -> Any:
        """회로차단 + 타임아웃 하에서 operation 실행

        Raises:
            CircuitOpenException: 회로가 열려 있어 시도하지 않음
            UpstreamTimeoutException: 타임아웃 (실패로 집계)
            UpstreamRejectedException: 업스트림 거절 (집계 제외)
            UpstreamFailureException: 그 외 업스트림 실패
        """
        self.metrics.total_calls += 1
        if not self.try_acquire():
            self.metrics.short_circuits += 1
            raise CircuitOpenException(self.name, self.get_remaining_open_time())

        timeout = timeout_s if timeout_s is not None else self.config.call_timeout_s
        try:
            value = await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.CancelledError:
            # 호출자 취소는 실패가 아님
            self._release_trial()
            raise
        except asyncio.TimeoutError:
            self.metrics.timeouts += 1
            self.record_failure(f"timeout after {timeout}s")
            raise UpstreamTimeoutException(self.name, timeout)
        except Exception as e:
            if self._strategy.is_rejection(e):
                self.record_rejection()
                raise
            if isinstance(e, UpstreamTimeoutException):
                self.metrics.timeouts += 1
            self.record_failure(type(e).__name__)
            raise

        self.record_success()
        return value

    def trip(self, reason: str = "manual trip") -> None:
        """수동 개방"""
        self._open(reason)

    def reset(self) -> None:
        """수동 복구"""
        self._consecutive_failures = 0
        self._opened_at = None
        self._trial_in_flight = False
        self._transition(CircuitState.CLOSED, "manual reset")

    @property
    def health(self) -> str:
        if self._state == CircuitState.OPEN:
            return "unhealthy"
        if self._state == CircuitState.HALF_OPEN or self._consecutive_failures > 0:
            return "degraded"
        return "healthy"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self._state.value,
            "health": self.health,
            "consecutive_failures": self._consecutive_failures,
            "failure_threshold": self.config.failure_threshold,
            "reset_timeout_s": self.config.reset_timeout_s,
            "retry_after_s": round(self.get_remaining_open_time(), 2),
            "metrics": self.metrics.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker({self.name}, {self._state.value.upper()}, "
            f"fail_count={self._consecutive_failures}/{self.config.failure_threshold})"
        )


class CircuitBreakerRegistry:
    """프로바이더 이름 → CircuitBreaker (최초 사용 시 생성)"""

    def __init__(
        self,
        profiles: Optional[dict[str, BreakerConfig]] = None,
        default_config: Optional[BreakerConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._profiles = dict(DEFAULT_BREAKER_PROFILES if profiles is None else profiles)
        self._default = default_config or BreakerConfig.from_settings()
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}

    def get(self, name: str) -> CircuitBreaker:
        breaker = self._breakers.get(name)
        if breaker is None:
            config = self._profiles.get(name, self._default)
            breaker = CircuitBreaker(name, config, clock=self._clock)
            self._breakers[name] = breaker
            logger.debug(f"[CIRCUIT_BREAKER] created breaker for '{name}' ({config})")
        return breaker

    def names(self) -> list[str]:
        return sorted(self._breakers)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return {name: b.to_dict() for name, b in sorted(self._breakers.items())}

    def reset_all(self) -> None:
        for breaker in self._breakers.values():
            breaker.reset()
