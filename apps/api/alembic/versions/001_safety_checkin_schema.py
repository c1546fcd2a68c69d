"""safety check-in schema

Revision ID: 001
Revises:
Create Date: 2025-11-03 00:00:00.000000

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
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'user_profiles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'user_devices',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('device_token', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    )
    op.create_index('ix_user_devices_user_active', 'user_devices', ['user_id', 'is_active'])

    op.create_table(
        'safety_timings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('label', sa.Text(), nullable=False),
        sa.Column('time', sa.Time(), nullable=False),
        sa.Column('active_days', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    )
    op.create_index('ix_safety_timings_active_time', 'safety_timings', ['is_active', 'time'])

    op.create_table(
        'safety_checkins',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('timing_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('checkin_date', sa.Date(), nullable=False),
        sa.Column('scheduled_time', sa.Time(), nullable=False),
        sa.Column('status', sa.Text(), server_default='pending', nullable=False),
        sa.Column('snooze_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_snooze_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('escalated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['timing_id'], ['safety_timings.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.UniqueConstraint('timing_id', 'checkin_date', name='uq_safety_checkin_timing_date'),
        sa.CheckConstraint('snooze_count >= 0', name='ck_safety_checkin_snooze_count_non_negative'),
    )
    op.create_index('ix_safety_checkins_status_snooze', 'safety_checkins', ['status', 'last_snooze_at'])

    op.create_table(
        'safety_snooze_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('checkin_id', sa.Integer(), nullable=False),
        sa.Column('snooze_number', sa.Integer(), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notification_delivered', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['checkin_id'], ['safety_checkins.id'], ),
        sa.UniqueConstraint('checkin_id', 'snooze_number', name='uq_safety_snooze_log_checkin_number'),
    )

    op.create_table(
        'safety_alerts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('checkin_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('alert_type', sa.Text(), nullable=False),
        sa.Column('priority', sa.Text(), nullable=False),
        sa.Column('alert_status', sa.Text(), server_default='pending', nullable=False),
        sa.Column('alert_sent_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['checkin_id'], ['safety_checkins.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.UniqueConstraint('checkin_id', 'alert_type', name='uq_safety_alert_checkin_type'),
    )
    op.create_index('ix_safety_alerts_org_status', 'safety_alerts', ['org_id', 'alert_status'])

    op.create_table(
        'notification_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('checkin_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('notification_type', sa.Text(), nullable=False),
        sa.Column('delivery_status', sa.Text(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['checkin_id'], ['safety_checkins.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    )
    op.create_index('ix_notification_logs_checkin_id', 'notification_logs', ['checkin_id'])


def downgrade() -> None:
    op.drop_index('ix_notification_logs_checkin_id', table_name='notification_logs')
    op.drop_table('notification_logs')
    op.drop_index('ix_safety_alerts_org_status', table_name='safety_alerts')
    op.drop_table('safety_alerts')
    op.drop_table('safety_snooze_logs')
    op.drop_index('ix_safety_checkins_status_snooze', table_name='safety_checkins')
    op.drop_table('safety_checkins')
    op.drop_index('ix_safety_timings_active_time', table_name='safety_timings')
    op.drop_table('safety_timings')
    op.drop_index('ix_user_devices_user_active', table_name='user_devices')
    op.drop_table('user_devices')
    op.drop_table('user_profiles')
    op.drop_table('users')
