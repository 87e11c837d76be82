"""커스텀 예외 정의 (Structured Exception Hierarchy)"""
from typing import Any, Optional


# 기본 예외 클래스
class ContentSearchException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# 업스트림(프로바이더) 관련 예외
class UpstreamException(ContentSearchException):
    """업스트림 호출 관련 예외의 기본 클래스"""
    def __init__(
        self,
        message: str,
        error_code: str = "UPSTREAM_ERROR",
        provider: str = "",
        details: Optional[dict[str, Any]] = None,
    ):
        self.provider = provider
        super().__init__(message, error_code or "UPSTREAM_ERROR", details)


class UpstreamFailureException(UpstreamException):
    """네트워크/5xx/429 실패 (재시도 가능, 회로차단 집계 대상)"""
    def __init__(
        self,
        provider: str,
        reason: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        error_code: str = "UPSTREAM_FAILURE",
    ):
        self.status_code = status_code
        message = f"Upstream '{provider}' failed: {reason}"
        super().__init__(
            message,
            error_code,
            provider,
            details or {"provider": provider, "reason": reason, "status_code": status_code},
        )


class UpstreamTimeoutException(UpstreamFailureException):
    """업스트림 타임아웃 (실패와 동일하게 집계)"""
    def __init__(self, provider: str, timeout_s: float, details: Optional[dict[str, Any]] = None):
        self.timeout_s = timeout_s
        super().__init__(
            provider,
            f"timed out after {timeout_s:.1f}s",
            None,
            details or {"provider": provider, "timeout_s": timeout_s},
            error_code="UPSTREAM_TIMEOUT",
        )


class UpstreamRejectedException(UpstreamException):
    """4xx: 쿼리가 잘못되었거나 지원되지 않음 (재시도하지 않음)"""
    def __init__(self, provider: str, status_code: int, reason: str = "", details: Optional[dict[str, Any]] = None):
        self.status_code = status_code
        message = f"Upstream '{provider}' rejected the query (HTTP {status_code})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            "UPSTREAM_REJECTED",
            provider,
            details or {"provider": provider, "status_code": status_code},
        )


class CircuitOpenException(UpstreamException):
    """회로가 열려 있어 호출을 시도하지 않음 (fallback 미설정 시)"""
    def __init__(self, provider: str, retry_after_s: float = 0.0):
        self.retry_after_s = retry_after_s
        super().__init__(
            f"Circuit breaker is OPEN for '{provider}'",
            "CIRCUIT_OPEN",
            provider,
            {"provider": provider, "retry_after_s": round(retry_after_s, 2)},
        )


# 입력 관련 예외
class InvalidQueryException(ContentSearchException):
    """도메인 수준 입력 검증 실패"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__(f"Invalid query: {reason}", "INVALID_QUERY", details or {"reason": reason})


class UnknownProviderException(ContentSearchException):
    """등록되지 않은 프로바이더"""
    def __init__(self, provider: str):
        super().__init__(f"Unknown provider: {provider}", "UNKNOWN_PROVIDER", {"provider": provider})


# 세션 관련 예외
class SessionException(ContentSearchException):
    """세션 관련 예외의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "SESSION_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "SESSION_ERROR", details)


class SessionExpiredException(SessionException):
    """세션이 없거나 만료됨 - 검색을 다시 시작해야 함"""
    def __init__(self, user_id: str):
        super().__init__(
            "Session expired. Please run the search again.",
            "SESSION_EXPIRED",
            {"user_id": user_id},
        )


class OwnershipViolationException(SessionException):
    """세션 소유자가 아닌 사용자의 조작"""
    def __init__(self, owner_id: str, actor_id: str):
        super().__init__(
            "This session belongs to another user.",
            "OWNERSHIP_VIOLATION",
            {"owner_id": owner_id, "actor_id": actor_id},
        )


# 캐시/저장소 관련 예외
class CacheException(ContentSearchException):
    """캐시 관련 예외"""
    def __init__(self, message: str, error_code: str = "CACHE_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CACHE_ERROR", details)


class CacheConnectionException(CacheException):
    """캐시 연결 실패"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Failed to connect to cache: {reason}"
        super().__init__(message, "CACHE_CONNECTION_ERROR", details)


class CacheSerializationException(CacheException):
    """캐시 직렬화/역직렬화 오류"""
    def __init__(self, operation: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Cache {operation} failed: {reason}"
        super().__init__(message, "CACHE_SERIALIZATION_ERROR",
                        details or {"operation": operation, "reason": reason})


class DatabaseException(ContentSearchException):
    """데이터베이스 관련 예외"""
    def __init__(self, message: str, error_code: str = "DB_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "DB_ERROR", details)
