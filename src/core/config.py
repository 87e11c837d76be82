"""설정 관리 - 환경 변수 로드 및 검증"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 영속 저장소 (memory | redis | database)
    persistence_backend: str = "memory"
    database_url: str = "sqlite:///./content_search.db"
    redis_url: str = ""
    memory_store_max_entries: int = 5000  # memory 백엔드의 네임스페이스별 최대 항목 수

    # TTL 캐시 (검색 결과 / 자동완성)
    cache_max_entries: int = 500
    search_cache_ttl_seconds: int = 600  # 10분
    autocomplete_cache_ttl_seconds: int = 300  # 5분
    post_cache_ttl_seconds: int = 1800

    # 세션
    session_ttl_seconds: int = 7200  # 2시간
    session_max_entries: int = 1000
    session_sweep_interval_seconds: int = 300  # 5분마다 만료 세션 정리

    # 회로차단(CB): 프로바이더별 프로필이 없을 때의 기본값
    breaker_failure_threshold: int = 3
    breaker_reset_timeout_seconds: float = 60.0
    upstream_timeout_seconds: float = 15.0

    # 프로바이더
    default_provider: str = "rule34"
    rule34_user_id: str = ""
    rule34_api_key: str = ""
    http_user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    reddit_user_agent: str = "content-search/1.0"
    http_impersonate: str = "chrome110"
    http_max_clients: int = 20

    # 사용자 데이터
    favorites_max: int = 100
    history_max: int = 50
    user_data_ttl_seconds: int = 7 * 24 * 3600  # 7일
    history_ttl_seconds: int = 24 * 3600  # 24시간

    # API
    api_title: str = "Content Search Engine"
    api_version: str = "1.0.0"
    api_description: str = "Circuit-breaker protected tag/post search with per-user paginated sessions."

    # 로깅
    log_level: str = "INFO"

    @field_validator(
        "search_cache_ttl_seconds",
        "autocomplete_cache_ttl_seconds",
        "post_cache_ttl_seconds",
        "session_ttl_seconds",
        "session_sweep_interval_seconds",
        "user_data_ttl_seconds",
        "history_ttl_seconds",
    )
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("TTL values must be positive")
        return v

    @field_validator(
        "cache_max_entries", "session_max_entries", "memory_store_max_entries", "favorites_max", "history_max"
    )
    @classmethod
    def validate_sizes(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("size limits must be positive")
        return v

    @field_validator("breaker_failure_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if v < 1:
            raise ValueError("breaker_failure_threshold must be >= 1")
        return v

    @field_validator("breaker_reset_timeout_seconds", "upstream_timeout_seconds")
    @classmethod
    def validate_durations(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("breaker durations must be positive")
        return v

    @field_validator("persistence_backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("memory", "redis", "database"):
            raise ValueError("persistence_backend must be one of: memory, redis, database")
        return v

    @model_validator(mode="after")
    def validate_backend_urls(self) -> "Settings":
        if self.persistence_backend == "redis" and not self.redis_url:
            raise ValueError("redis_url must not be empty when persistence_backend=redis")
        if self.persistence_backend == "database" and not self.database_url:
            raise ValueError("database_url must not be empty when persistence_backend=database")
        return self

    def rule34_credentials(self) -> Optional[tuple[str, str]]:
        """rule34 API 인증 정보 (둘 다 있을 때만)"""
        if self.rule34_user_id and self.rule34_api_key:
            return self.rule34_user_id, self.rule34_api_key
        return None

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
