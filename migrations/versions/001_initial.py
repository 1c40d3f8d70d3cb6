"""Initial schema - key/value cache table

Revision ID: 001_initial
Revises:
Create Date: 2026-10-16 00:00:00.000000

This migration adds:
1. cache_entries table holding every namespaced key (signal records,
   reports, user profiles, scheduler state)
2. Index on expires_at for the periodic purge
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'cache_entries',
        sa.Column('key', sa.String(255), primary_key=True),
        sa.Column('value', sa.Text, nullable=False),
        sa.Column('expires_at', sa.Float, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=True, server_default=sa.func.now()),
    )
    op.create_index('idx_cache_entries_expires_at', 'cache_entries', ['expires_at'])


def downgrade() -> None:
    op.drop_index('idx_cache_entries_expires_at', table_name='cache_entries')
    op.drop_table('cache_entries')
