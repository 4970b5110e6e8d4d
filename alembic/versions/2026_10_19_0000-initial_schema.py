"""initial schema

Revision ID: 2026_10_19_0000
Revises:
Create Date: 2026-10-19 08:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = '2026_10_19_0000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create quota, swipe and card tables."""

    # ========================================================================
    # user_quotas
    # ========================================================================
    op.create_table(
        'user_quotas',
        sa.Column('user_id', sa.String(255), primary_key=True),
        sa.Column('tier', sa.String(20), nullable=False, server_default='free'),
        sa.Column('swipes_remaining', sa.Integer(), nullable=False),
        sa.Column('last_reset_date_key', sa.String(10), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),

        sa.CheckConstraint('swipes_remaining >= 0', name='ck_swipes_remaining_non_negative'),
    )
    op.create_index('idx_user_quotas_updated_at', 'user_quotas', ['updated_at'])

    # ========================================================================
    # swipe_events
    # ========================================================================
    op.create_table(
        'swipe_events',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('content_id', sa.String(255), nullable=False),
        sa.Column('direction', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('idx_swipe_events_user_created', 'swipe_events', ['user_id', 'created_at'])

    # ========================================================================
    # saved_cards
    # ========================================================================
    op.create_table(
        'saved_cards',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('content_id', sa.String(255), nullable=False),
        sa.Column('saved_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),

        sa.UniqueConstraint('user_id', 'content_id', name='uq_saved_card'),
    )
    op.create_index('idx_saved_cards_user_saved_at', 'saved_cards', ['user_id', 'saved_at'])

    # ========================================================================
    # card_cache
    # ========================================================================
    op.create_table(
        'card_cache',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('profile_snapshot', JSONB(), nullable=True),
        sa.Column('items', JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),

        sa.UniqueConstraint('user_id', 'category', name='uq_card_cache_user_category'),
    )

    # ========================================================================
    # seen_cards
    # ========================================================================
    op.create_table(
        'seen_cards',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('content_identifier', sa.String(255), nullable=False),
        sa.Column('shown_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index(
        'idx_seen_cards_user_category_shown',
        'seen_cards',
        ['user_id', 'category', sa.text('shown_at DESC')],
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('idx_seen_cards_user_category_shown', table_name='seen_cards')
    op.drop_table('seen_cards')
    op.drop_table('card_cache')
    op.drop_index('idx_saved_cards_user_saved_at', table_name='saved_cards')
    op.drop_table('saved_cards')
    op.drop_index('idx_swipe_events_user_created', table_name='swipe_events')
    op.drop_table('swipe_events')
    op.drop_index('idx_user_quotas_updated_at', table_name='user_quotas')
    op.drop_table('user_quotas')
