"""Execution Strategy - Failure Classification Logic

Determines how upstream errors affect breaker state and what the caller sees.
"""

from enum import Enum

from src.core.exceptions import (
    CircuitOpenException,
    UpstreamFailureException,
    UpstreamRejectedException,
    UpstreamTimeoutException,
)

# 재시도 가능한 HTTP 상태 (실패로 집계)
RETRYABLE_STATUS_CODES = frozenset({408, 429})


class ExecutionSource(str, Enum):
    """결과 출처

    ResilienceWrapper가 반환한 값이 어디서 왔는지 나타냅니다.
    """

    CACHE = "cache"
    UPSTREAM = "upstream"
    FALLBACK = "fallback"


class ExecutionStrategy:
    """실패 분류 전략

    에러 유형에 따라 회로차단 집계 여부를 결정합니다.

    Usage:
        strategy = ExecutionStrategy()

        try:
            value = await provider.fetch(query)
        except Exception as e:
            if strategy.is_rejection(e):
                raise  # 쿼리 수정 필요
            if strategy.is_breaker_failure(e):
                breaker.record_failure()
    """

    @staticmethod
    def classify_status(status_code: int) -> str:
        """HTTP 상태 코드 분류

        Returns:
            "ok" | "failure" | "rejected"
        """
        if 200 <= status_code < 400:
            return "ok"
        if status_code < 200 or status_code >= 500 or status_code in RETRYABLE_STATUS_CODES:
            return "failure"
        return "rejected"

    @staticmethod
    def is_rejection(error: BaseException) -> bool:
        """업스트림이 쿼리를 거절했는가? (4xx, 회로차단 집계 제외)"""
        return isinstance(error, UpstreamRejectedException)

    @staticmethod
    def is_breaker_failure(error: BaseException) -> bool:
        """회로차단 실패로 집계되는가?

        - 네트워크 오류 / 5xx / 429 / 타임아웃: 집계
        - 4xx 거절: 제외 (프로바이더는 응답함)
        - 호출자 취소(CancelledError): 제외
        - 회로 개방으로 인한 차단: 제외 (시도하지 않음)
        """
        if not isinstance(error, Exception):
            return False
        if isinstance(error, (UpstreamRejectedException, CircuitOpenException)):
            return False
        return True

    @staticmethod
    def is_timeout(error: BaseException) -> bool:
        return isinstance(error, (UpstreamTimeoutException, TimeoutError))

    @staticmethod
    def should_absorb(error: BaseException) -> bool:
        """fallback 으로 흡수 가능한 오류인가? (거절은 호출자에게 그대로 전달)"""
        if isinstance(error, (UpstreamFailureException, CircuitOpenException)):
            return True
        return isinstance(error, Exception) and not isinstance(error, UpstreamRejectedException)
