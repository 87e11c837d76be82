"""Alembic 마이그레이션: kv_entries 테이블 추가"""
from alembic import op
import sqlalchemy as sa

revision = "kv_entries_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """네임스페이스 KV 테이블 생성"""
    op.create_table(
        'kv_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('namespace', sa.String(64), nullable=False),
        sa.Column('key', sa.String(255), nullable=False),
        sa.Column('payload_json', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('namespace', 'key', name='uq_kv_entries_namespace_key'),
    )

    # 인덱스 추가
    op.create_index('ix_kv_entries_id', 'kv_entries', ['id'])
    op.create_index('ix_kv_entries_expires_at', 'kv_entries', ['expires_at'])
    op.create_index('idx_kv_entries_namespace_key', 'kv_entries', ['namespace', 'key'])


def downgrade():
    """테이블 삭제"""
    op.drop_index('idx_kv_entries_namespace_key', table_name='kv_entries')
    op.drop_index('ix_kv_entries_expires_at', table_name='kv_entries')
    op.drop_index('ix_kv_entries_id', table_name='kv_entries')
    op.drop_table('kv_entries')
