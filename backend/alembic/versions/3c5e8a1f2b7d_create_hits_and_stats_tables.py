"""create hits and stats tables

Revision ID: 3c5e8a1f2b7d
Revises:
Create Date: 2026-10-19 10:12:41.204117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c5e8a1f2b7d'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # hits table
    op.create_table(
        'hits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('url', sa.String(length=1024), nullable=False),
        sa.Column('subject_kind', sa.String(length=190), nullable=True),
        sa.Column('subject_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ip', sa.String(length=45), nullable=False, server_default=''),
        sa.Column('referrer', sa.Text(), nullable=False, server_default=''),
        sa.Column('query', sa.Text(), nullable=False, server_default=''),
        sa.Column('user_agent', sa.Text(), nullable=False, server_default=''),
        sa.Column('accept_language', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_hits_id'), 'hits', ['id'], unique=False)
    op.create_index(op.f('ix_hits_url'), 'hits', ['url'], unique=False)
    op.create_index(op.f('ix_hits_user_id'), 'hits', ['user_id'], unique=False)
    op.create_index(op.f('ix_hits_created_at'), 'hits', ['created_at'], unique=False)
    op.create_index('ix_hits_subject', 'hits', ['subject_kind', 'subject_id'], unique=False)

    # stats table (rollups)
    op.create_table(
        'stats',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.Enum('page', 'resource', 'download', name='stat_kind'), nullable=False),
        sa.Column('url', sa.String(length=1024), nullable=True),
        sa.Column('subject_kind', sa.String(length=190), nullable=True),
        sa.Column('subject_id', sa.Integer(), nullable=True),
        sa.Column('hits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('hits_anonymous', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('hits_identified', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('modified_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kind', 'url', name='uq_stats_kind_url'),
        sa.UniqueConstraint('kind', 'subject_kind', 'subject_id', name='uq_stats_kind_subject'),
    )
    op.create_index(op.f('ix_stats_id'), 'stats', ['id'], unique=False)
    op.create_index(op.f('ix_stats_kind'), 'stats', ['kind'], unique=False)
    op.create_index(op.f('ix_stats_url'), 'stats', ['url'], unique=False)
    op.create_index(op.f('ix_stats_hits'), 'stats', ['hits'], unique=False)
    op.create_index(op.f('ix_stats_hits_anonymous'), 'stats', ['hits_anonymous'], unique=False)
    op.create_index(op.f('ix_stats_hits_identified'), 'stats', ['hits_identified'], unique=False)
    op.create_index(op.f('ix_stats_created_at'), 'stats', ['created_at'], unique=False)
    op.create_index(op.f('ix_stats_modified_at'), 'stats', ['modified_at'], unique=False)
    op.create_index('ix_stats_subject', 'stats', ['subject_kind', 'subject_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_stats_subject', table_name='stats')
    op.drop_index(op.f('ix_stats_modified_at'), table_name='stats')
    op.drop_index(op.f('ix_stats_created_at'), table_name='stats')
    op.drop_index(op.f('ix_stats_hits_identified'), table_name='stats')
    op.drop_index(op.f('ix_stats_hits_anonymous'), table_name='stats')
    op.drop_index(op.f('ix_stats_hits'), table_name='stats')
    op.drop_index(op.f('ix_stats_url'), table_name='stats')
    op.drop_index(op.f('ix_stats_kind'), table_name='stats')
    op.drop_index(op.f('ix_stats_id'), table_name='stats')
    op.drop_table('stats')
    sa.Enum(name='stat_kind').drop(op.get_bind(), checkfirst=True)

    op.drop_index('ix_hits_subject', table_name='hits')
    op.drop_index(op.f('ix_hits_created_at'), table_name='hits')
    op.drop_index(op.f('ix_hits_user_id'), table_name='hits')
    op.drop_index(op.f('ix_hits_url'), table_name='hits')
    op.drop_index(op.f('ix_hits_id'), table_name='hits')
    op.drop_table('hits')
