"""공유 HTTP 클라이언트 (curl_cffi)

- 요청마다 AsyncSession을 만들면 TLS/커넥션 오버헤드가 커지므로
  프로세스 단위로 세션을 재사용합니다.
- HTTP 상태는 ExecutionStrategy 기준으로 실패/거절 예외로 변환됩니다.
- 앱 종료 시 close()로 정리합니다.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Optional

from curl_cffi.requests import AsyncSession
from curl_cffi.requests.exceptions import RequestException, Timeout

from src.core.config import settings
from src.core.exceptions import (
    UpstreamFailureException,
    UpstreamRejectedException,
    UpstreamTimeoutException,
)
from src.core.logging import logger
from src.engine.strategy import ExecutionStrategy


class SharedHttpClient:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._session: Optional[AsyncSession] = None

    async def _ensure_session(self) -> AsyncSession:
        async with self._lock:
            if self._session is not None:
                return self._session
            self._session = AsyncSession(
                impersonate=settings.http_impersonate,
                headers=self.default_headers(),
                allow_redirects=True,
                max_clients=settings.http_max_clients,
                trust_env=False,
            )
            return self._session

    def default_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": settings.http_user_agent,
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def get_json(
        self,
        provider: str,
        url: str,
        *,
        timeout_s: float,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET + JSON 디코드

        Returns:
            디코드된 JSON (본문이 비어 있으면 None)

        Raises:
            UpstreamTimeoutException: 타임아웃
            UpstreamFailureException: 네트워크 오류 / 5xx / 429 / JSON 오류
            UpstreamRejectedException: 그 외 4xx
        """
        sess = await self._ensure_session()
        try:
            resp = await sess.get(url, params=params, headers=headers, timeout=timeout_s)
        except Timeout as e:
            logger.info(f"[HTTP_CLIENT] GET timed out: {provider} {type(e).__name__}")
            raise UpstreamTimeoutException(provider, timeout_s) from e
        except RequestException as e:
            logger.info(f"[HTTP_CLIENT] GET failed: {provider} {type(e).__name__}: {repr(e)}")
            raise UpstreamFailureException(provider, f"network error: {type(e).__name__}") from e

        status = getattr(resp, "status_code", 0) or 0
        verdict = ExecutionStrategy.classify_status(status)
        if verdict == "failure":
            raise UpstreamFailureException(provider, f"HTTP {status}", status_code=status)
        if verdict == "rejected":
            raise UpstreamRejectedException(provider, status)

        text = (getattr(resp, "text", "") or "").strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise UpstreamFailureException(provider, f"invalid JSON: {e}", status_code=status) from e

    async def close(self) -> None:
        async with self._lock:
            if self._session is None:
                return
            try:
                await self._session.close()
            except RequestException as e:
                logger.debug(f"[HTTP_CLIENT] close failed: {e}")
            self._session = None


_shared_http_client = SharedHttpClient()


def get_shared_http_client() -> SharedHttpClient:
    return _shared_http_client


async def shutdown_shared_http_client() -> None:
    await _shared_http_client.close()
