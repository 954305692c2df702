"""Initial schema

Revision ID: 7c41d9e2a0b3
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '7c41d9e2a0b3'
down_revision = None
branch_labels = None
depends_on = None

CONTENT_TABLES = ('mood_entries', 'gratitude_entries', 'notes')


def _owner_column():
    return sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True)


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=True),
        sa.Column('google_id', sa.String(), nullable=True),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('google_id')
    )

    op.create_table('tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('estimated_time', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        _owner_column(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tasks_user_id', 'tasks', ['user_id'])
    op.create_index('ix_tasks_category', 'tasks', ['category'])

    # Mood, gratitude and notes share one shape apart from the payload column
    for table in CONTENT_TABLES:
        payload = sa.Column('mood', sa.String(), nullable=False) if table == 'mood_entries' \
            else sa.Column('content', sa.Text(), nullable=False)
        op.create_table(table,
            sa.Column('id', sa.Integer(), nullable=False),
            payload,
            sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
            _owner_column(),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(f'ix_{table}_user_id', table, ['user_id'])

    op.create_table('custom_cards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        _owner_column(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_custom_cards_user_id', 'custom_cards', ['user_id'])

    op.create_table('custom_tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['card_id'], ['custom_cards.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_custom_tasks_card_id', 'custom_tasks', ['card_id'])


def downgrade():
    op.drop_table('custom_tasks')
    op.drop_table('custom_cards')
    for table in reversed(CONTENT_TABLES):
        op.drop_table(table)
    op.drop_table('tasks')
    op.drop_table('users')
