"""데이터베이스 모델"""
from sqlalchemy import Column, DateTime, Index, Integer, String, Text, TIMESTAMP, UniqueConstraint, func
from src.core.database import Base


class KvEntry(Base):
    """네임스페이스 KV 영속 저장소 테이블 (설정/차단목록/즐겨찾기/기록).

    - namespace: 데이터 종류 (preferences, blacklist, favorites, history)
    - key: 사용자 ID 등 네임스페이스 내 키
    - payload_json: 값(dict/list)을 JSON으로 직렬화한 값
    - expires_at: 만료 시각 (NULL = 만료 없음)
    """

    __tablename__ = "kv_entries"

    id = Column(Integer, primary_key=True, index=True)
    namespace = Column(String(64), nullable=False)
    key = Column(String(255), nullable=False)
    payload_json = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=True, index=True)
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("namespace", "key", name="uq_kv_entries_namespace_key"),
        Index("idx_kv_entries_namespace_key", "namespace", "key"),
    )

    def __repr__(self) -> str:
        return f"<KvEntry(namespace={self.namespace}, key={self.key}, expires_at={self.expires_at})>"
