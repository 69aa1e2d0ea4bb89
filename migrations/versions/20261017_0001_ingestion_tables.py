"""Tables written by the queue workers

Revision ID: 0001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Votes table
    op.create_table(
        'votes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('event_id', sa.String(64), nullable=True, unique=True),
        sa.Column('clip_id', sa.String(64), nullable=False),
        sa.Column('voter_key', sa.String(128), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=True),
        sa.Column('vote_weight', sa.Float(), nullable=False, server_default='1'),
        sa.Column('vote_type', sa.String(20), nullable=False, server_default='standard'),
        sa.Column('slot_position', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('flagged', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('clip_id', 'voter_key', name='uq_votes_clip_voter'),
    )
    op.create_index('idx_votes_voter_key', 'votes', ['voter_key'])
    op.create_index('idx_votes_created_at', 'votes', ['created_at'])

    # Comments table (id is the producer's event id)
    op.create_table(
        'comments',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('clip_id', sa.String(64), nullable=False),
        sa.Column('user_key', sa.String(128), nullable=False),
        sa.Column('username', sa.String(100), nullable=False, server_default='Anonymous'),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('comment_text', sa.Text(), nullable=False, server_default=''),
        sa.Column('parent_comment_id', sa.String(64), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('idx_comments_clip_created', 'comments', ['clip_id', 'created_at'])
    op.create_index('idx_comments_parent', 'comments', ['parent_comment_id'])

    # Comment likes table
    op.create_table(
        'comment_likes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('comment_id', sa.String(64), sa.ForeignKey('comments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_key', sa.String(128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('comment_id', 'user_key', name='uq_comment_likes_comment_user'),
    )


def downgrade() -> None:
    op.drop_table('comment_likes')
    op.drop_table('comments')
    op.drop_table('votes')
