"""Create events and streams tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 10:12:04.118377

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('group', sa.String(), nullable=False),
        sa.Column('stream', sa.String(), nullable=False),
        sa.Column('timestamp', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False)
    )
    op.create_table(
        'streams',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('group', sa.String(), nullable=False),
        sa.Column('stream', sa.String(), nullable=False),
        sa.Column('last_event_time', sa.String(), nullable=False),
        sa.UniqueConstraint('group', 'stream', name='group_stream_unique_index')
    )

    # Listing and retention read these columns
    op.create_index('group_stream_timestamp_index', 'events', ['group', 'stream', 'timestamp'], if_not_exists=True)
    op.create_index('timestamp_index', 'events', ['timestamp'], if_not_exists=True)
    op.create_index('last_event_time_index', 'streams', ['last_event_time'], if_not_exists=True)


def downgrade():
    op.drop_index('last_event_time_index', 'streams')
    op.drop_index('timestamp_index', 'events')
    op.drop_index('group_stream_timestamp_index', 'events')
    op.drop_table('streams')
    op.drop_table('events')
