"""KV 리포지토리 - DB 기반 영속 저장소."""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import DatabaseException
from src.core.logging import logger
from src.repositories.models import KvEntry


class KvEntryRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, namespace: str, key: str, now: Optional[datetime] = None) -> Optional[Any]:
        """값 조회 (만료된 행은 없는 것으로 취급)."""
        now = now or datetime.now()
        try:
            row = (
                self.db.query(KvEntry)
                .filter(KvEntry.namespace == namespace)
                .filter(KvEntry.key == key)
                .first()
            )
            if not row:
                return None
            if row.expires_at is not None and row.expires_at <= now:
                return None
            return json.loads(row.payload_json)
        except SQLAlchemyError as e:
            logger.error(f"DB kv read error: {type(e).__name__}: {e}")
            raise DatabaseException(f"Failed to read {namespace}:{key}", details={"error": str(e)})

    def upsert(self, namespace: str, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """값 삽입/갱신."""
        payload_json = json.dumps(value, ensure_ascii=False)
        expires_at = datetime.now() + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        try:
            row = (
                self.db.query(KvEntry)
                .filter(KvEntry.namespace == namespace)
                .filter(KvEntry.key == key)
                .first()
            )
            if row:
                row.payload_json = payload_json
                row.expires_at = expires_at
            else:
                row = KvEntry(namespace=namespace, key=key, payload_json=payload_json, expires_at=expires_at)
                self.db.add(row)

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"DB kv write error: {type(e).__name__}: {e}")
            raise DatabaseException(f"Failed to write {namespace}:{key}", details={"error": str(e)})

    def delete(self, namespace: str, key: str) -> bool:
        try:
            deleted = (
                self.db.query(KvEntry)
                .filter(KvEntry.namespace == namespace)
                .filter(KvEntry.key == key)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return deleted > 0
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"DB kv delete error: {type(e).__name__}: {e}")
            raise DatabaseException(f"Failed to delete {namespace}:{key}", details={"error": str(e)})

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """만료된 행 일괄 삭제."""
        now = now or datetime.now()
        try:
            deleted = (
                self.db.query(KvEntry)
                .filter(KvEntry.expires_at.isnot(None))
                .filter(KvEntry.expires_at <= now)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return deleted
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"DB kv purge error: {type(e).__name__}: {e}")
            raise DatabaseException("Failed to purge expired kv entries", details={"error": str(e)})
