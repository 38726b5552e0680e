"""create_content_pipeline_tables

Revision ID: 7c1e4a2b9d30
Revises:
Create Date: 2026-10-19 09:12:44.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7c1e4a2b9d30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FETCHED_ITEM_STATUSES = ('PENDING', 'PROCESSING', 'APPROVED', 'PUBLISHED', 'REJECTED', 'ABSORBED')


def upgrade() -> None:
    """Create feed sources, fetched items, publishing settings and posts."""
    op.create_table('feed_sources',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('url', sa.String(length=1000), nullable=False),
        sa.Column('kind', sa.Enum('RSS', name='feed_source_kind'), nullable=False),
        sa.Column('language', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('poll_interval_minutes', sa.Integer(), nullable=False),
        sa.Column('last_polled_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('url')
    )

    op.create_table('posts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('slug', sa.String(length=600), nullable=False),
        sa.Column('excerpt', sa.Text(), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('author_id', sa.String(length=100), nullable=False),
        sa.Column('category_id', sa.String(length=100), nullable=False),
        sa.Column('structured_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug', name='uq_posts_slug')
    )

    op.create_table('fetched_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('source_id', sa.Integer(), nullable=False),
        sa.Column('original_url', sa.String(length=1000), nullable=False),
        sa.Column('original_title', sa.String(length=500), nullable=False),
        sa.Column('original_content', sa.Text(), nullable=False),
        sa.Column('original_excerpt', sa.Text(), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('status', sa.Enum(*FETCHED_ITEM_STATUSES, name='fetched_item_status'), nullable=False),
        sa.Column('generated_title', sa.String(length=500), nullable=True),
        sa.Column('generated_content', sa.Text(), nullable=True),
        sa.Column('generated_excerpt', sa.Text(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('post_id', sa.Integer(), nullable=True),
        sa.Column('fetched_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['source_id'], ['feed_sources.id']),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('original_url')
    )

    op.create_index('ix_fetched_items_source_id', 'fetched_items', ['source_id'])
    op.create_index('ix_fetched_items_status', 'fetched_items', ['status'])
    op.create_index('idx_fetched_items_processed_at', 'fetched_items', ['processed_at'])

    op.create_table('publishing_settings',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('auto_publish', sa.Boolean(), nullable=False),
        sa.Column('daily_quota', sa.Integer(), nullable=False),
        sa.Column('default_author_id', sa.String(length=100), nullable=True),
        sa.Column('default_category_id', sa.String(length=100), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    """Drop the pipeline tables and indexes."""
    op.drop_table('publishing_settings')
    op.drop_index('idx_fetched_items_processed_at', 'fetched_items')
    op.drop_index('ix_fetched_items_status', 'fetched_items')
    op.drop_index('ix_fetched_items_source_id', 'fetched_items')
    op.drop_table('fetched_items')
    op.drop_table('posts')
    op.drop_table('feed_sources')
    sa.Enum(name='fetched_item_status').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='feed_source_kind').drop(op.get_bind(), checkfirst=True)
