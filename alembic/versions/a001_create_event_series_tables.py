"""Create event series, events, timeslots, participants, scheduled tasks and activities

Revision ID: a001_create_event_series_tables
Revises:
Create Date: 2026-10-18

scheduled_tasks is created first: series and events hold nullable foreign
keys to the tasks armed on their behalf.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'a001_create_event_series_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'scheduled_tasks',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('payload', postgresql.JSONB(), nullable=False),
        sa.Column('run_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('state', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    # Dispatcher scan: pending tasks ordered by run time
    op.create_index('ix_scheduled_tasks_state_run_at', 'scheduled_tasks', ['state', 'run_at'])

    op.create_table(
        'activities',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('resource_id', sa.String(), nullable=False),
        sa.Column('type', sa.String(100), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.String(1000), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.UniqueConstraint('resource_id', 'type', 'scheduled_at', name='unique_activity_resource_type_time'),
    )
    op.create_index('ix_activities_resource_id', 'activities', ['resource_id'])

    op.create_table(
        'event_series',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('club_id', sa.String(), nullable=False),
        sa.Column('created_by', sa.String(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(300), nullable=True),
        sa.Column('location_name', sa.String(), nullable=False),
        sa.Column('location_address', sa.String(), nullable=True),
        sa.Column('location_place_id', sa.String(), nullable=True),
        sa.Column('timezone', sa.String(64), nullable=False),
        sa.Column('days_of_week', postgresql.JSONB(), nullable=False),
        sa.Column('interval', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('timeslot_template', postgresql.JSONB(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('on_series_end_task_id', sa.String(), sa.ForeignKey('scheduled_tasks.id', ondelete='SET NULL'), nullable=True),
        sa.Column('on_next_batch_task_id', sa.String(), sa.ForeignKey('scheduled_tasks.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.CheckConstraint('interval >= 1', name='check_series_interval_positive'),
        sa.CheckConstraint('start_date <= end_date', name='check_series_date_order'),
    )
    op.create_index('ix_event_series_club_id', 'event_series', ['club_id'])

    op.create_table(
        'events',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('event_series_id', sa.String(), sa.ForeignKey('event_series.id', ondelete='CASCADE'), nullable=True),
        sa.Column('club_id', sa.String(), nullable=False),
        sa.Column('created_by', sa.String(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(300), nullable=True),
        sa.Column('location_name', sa.String(), nullable=False),
        sa.Column('location_address', sa.String(), nullable=True),
        sa.Column('location_place_id', sa.String(), nullable=True),
        sa.Column('timezone', sa.String(64), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='not_started'),
        sa.Column('on_event_start_task_id', sa.String(), sa.ForeignKey('scheduled_tasks.id', ondelete='SET NULL'), nullable=True),
        sa.Column('on_event_end_task_id', sa.String(), sa.ForeignKey('scheduled_tasks.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.UniqueConstraint('event_series_id', 'date', name='unique_series_event_date'),
    )
    op.create_index('ix_events_event_series_id', 'events', ['event_series_id'])
    op.create_index('ix_events_club_id', 'events', ['club_id'])
    op.create_index('ix_events_date', 'events', ['date'])
    op.create_index('ix_events_club_date', 'events', ['club_id', 'date'])

    op.create_table(
        'event_timeslots',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('event_id', sa.String(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('name', sa.String(100), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=True),
        sa.Column('end_time', sa.String(5), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('max_participants', sa.Integer(), nullable=False),
        sa.Column('max_waitlist', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('permanent_participants', postgresql.JSONB(), nullable=False),
        sa.Column('num_participants', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('num_waitlisted', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('num_participants >= 0', name='check_timeslot_participants_positive'),
        sa.CheckConstraint('num_waitlisted >= 0', name='check_timeslot_waitlisted_positive'),
        sa.CheckConstraint('num_participants <= max_participants', name='check_timeslot_participants_lte_max'),
        sa.CheckConstraint('num_waitlisted <= max_waitlist', name='check_timeslot_waitlisted_lte_max'),
    )
    op.create_index('ix_event_timeslots_event_id', 'event_timeslots', ['event_id'])

    op.create_table(
        'event_participants',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('event_id', sa.String(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('timeslot_id', sa.String(), sa.ForeignKey('event_timeslots.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_waitlisted', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.UniqueConstraint('event_id', 'timeslot_id', 'user_id', name='unique_timeslot_user'),
    )
    op.create_index('ix_event_participants_event_id', 'event_participants', ['event_id'])
    op.create_index('ix_event_participants_user_id', 'event_participants', ['user_id'])
    op.create_index('ix_event_participants_event_user', 'event_participants', ['event_id', 'user_id'])
    op.create_index('ix_event_participants_user_date', 'event_participants', ['user_id', 'date'])


def downgrade() -> None:
    op.drop_table('event_participants')
    op.drop_table('event_timeslots')
    op.drop_table('events')
    op.drop_table('event_series')
    op.drop_table('activities')
    op.drop_index('ix_scheduled_tasks_state_run_at', table_name='scheduled_tasks')
    op.drop_table('scheduled_tasks')
