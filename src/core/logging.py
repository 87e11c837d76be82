"""로깅 설정 (Security Enhanced)"""
import logging
import os
import re
import sys

from src.core.config import settings

# Production 환경에서는 DEBUG 로그 비활성화
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development") == "production"

# 스케줄러/HTTP 라이브러리의 잡음은 WARNING 이상만
NOISY_LOGGERS = ("apscheduler", "httpx", "curl_cffi")

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
# api_key=..., token: ... 형태의 값만 가림
_SECRET_PAIRS = re.compile(r"(?i)\b(password|token|api_key|secret)(\s*[=:]\s*)([^\s&]+)")


def setup_logging() -> logging.Logger:
    """로거 초기화 및 설정"""

    logger = logging.getLogger("content_search")

    log_level = settings.log_level.upper()
    if IS_PRODUCTION and log_level == "DEBUG":
        log_level = "INFO"
    level = getattr(logging, log_level, logging.INFO)
    logger.setLevel(level)
    logger.propagate = False

    if IS_PRODUCTION:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


logger = setup_logging()


def sanitize_for_log(value: str, max_length: int = 100) -> str:
    """사용자 입력을 로그 한 줄에 안전하게 넣을 수 있도록 정리

    - 제어 문자(개행 등) 제거: 로그 위조 방지
    - key=value 형태의 인증 값 마스킹
    - 길이 제한

    Args:
        value: 로깅할 문자열
        max_length: 최대 길이

    Returns:
        정리된 문자열
    """
    if not value:
        return "[empty]"

    result = _CONTROL_CHARS.sub(" ", str(value))
    result = _SECRET_PAIRS.sub(lambda m: f"{m.group(1)}{m.group(2)}***", result)

    if len(result) > max_length:
        result = result[:max_length] + "..."

    return result
