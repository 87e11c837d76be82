"""만료 세션 / 만료 KV 레코드 정리 스케줄러"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.core.config import settings
from src.core.exceptions import DatabaseException
from src.core.logging import logger
from src.services.impl.kv_store import KeyValueStore, SqlKeyValueStore
from src.services.impl.session_store import SessionStore


class SessionSweeper:
    """주기적으로 만료된 세션을 제거

    세션은 조회 시에도 만료 처리되지만, 다시 조회되지 않는 세션이
    메모리에 남지 않도록 일정 간격으로 일괄 정리합니다.
    SQL 저장소를 쓰는 경우 만료된 KV 레코드도 함께 삭제합니다.
    """

    JOB_ID = "session_sweep"

    def __init__(
        self,
        sessions: SessionStore,
        kv_store: Optional[KeyValueStore] = None,
        interval_seconds: Optional[int] = None,
    ):
        self.sessions = sessions
        self.kv_store = kv_store
        self.interval_seconds = interval_seconds or settings.session_sweep_interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None

    async def run_once(self) -> dict:
        """정리 1회 실행"""
        removed_sessions = self.sessions.sweep()
        removed_records = 0
        if isinstance(self.kv_store, SqlKeyValueStore):
            try:
                removed_records = await self.kv_store.purge_expired()
            except DatabaseException as e:
                logger.error(f"[Scheduler] Failed to purge expired kv entries: {e}")
        if removed_sessions or removed_records:
            logger.info(
                f"[Scheduler] Sweep done: sessions={removed_sessions} kv_entries={removed_records} "
                f"active_sessions={self.sessions.count()}"
            )
        return {"sessions": removed_sessions, "kv_entries": removed_records}

    def start(self) -> AsyncIOScheduler:
        """실행 중인 이벤트 루프에 스케줄러 등록"""
        if self._scheduler is not None and self._scheduler.running:
            return self._scheduler

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Expired Session Sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(f"[Scheduler] Session sweep scheduled every {self.interval_seconds}s")
        return scheduler

    def shutdown(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("[Scheduler] Session sweep stopped")
        self._scheduler = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
