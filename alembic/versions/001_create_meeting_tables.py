"""Create meetings, meeting_participants and sync_status tables

Revision ID: 001
Revises:
Create Date: 2025-03-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)

    # Skip if tables were already created on startup
    if 'meetings' in inspector.get_table_names():
        return

    op.create_table(
        'meetings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('fathom_meeting_id', sa.String(255), nullable=False, unique=True),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('recording_start_time', sa.DateTime(), nullable=True),
        sa.Column('recording_end_time', sa.DateTime(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('duration_source', sa.String(20), nullable=True),
        sa.Column('recording_url', sa.Text(), nullable=True),
        sa.Column('transcript', sa.Text(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_meetings_start_time', 'meetings', ['start_time'])
    op.create_index('ix_meetings_title', 'meetings', ['title'])

    op.create_table(
        'meeting_participants',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('meeting_id', sa.Integer(), sa.ForeignKey('meetings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('domain', sa.Text(), nullable=True),
        sa.Column('is_host', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('meeting_id', 'email', name='meeting_participants_meeting_id_email_key'),
    )
    op.create_index('ix_meeting_participants_name', 'meeting_participants', ['name'])
    op.create_index('ix_meeting_participants_email', 'meeting_participants', ['email'])
    op.create_index('ix_meeting_participants_domain', 'meeting_participants', ['domain'])

    op.create_table(
        'sync_status',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('last_sync_time', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('total_meetings_synced', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sync_status', sa.String(20), nullable=False, server_default='never_synced'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_sync_status_created_at', 'sync_status', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_sync_status_created_at', table_name='sync_status')
    op.drop_table('sync_status')

    op.drop_index('ix_meeting_participants_domain', table_name='meeting_participants')
    op.drop_index('ix_meeting_participants_email', table_name='meeting_participants')
    op.drop_index('ix_meeting_participants_name', table_name='meeting_participants')
    op.drop_table('meeting_participants')

    op.drop_index('ix_meetings_title', table_name='meetings')
    op.drop_index('ix_meetings_start_time', table_name='meetings')
    op.drop_table('meetings')
