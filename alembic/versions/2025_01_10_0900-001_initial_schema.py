"""initial schema: scheduled tasks, price history, price alerts, notifications

Revision ID: 001
Revises:
Create Date: 2025-01-10 09:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables with their indexes."""

    # Create scheduled_tasks table
    op.create_table(
        'scheduled_tasks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('origin', sa.String(length=3), nullable=False, comment='IATA code'),
        sa.Column('destination', sa.String(length=3), nullable=False, comment='IATA code'),
        sa.Column('departure_date', sa.String(length=20), nullable=False, comment='YYYY-MM-DD or +<n>d|w|m'),
        sa.Column('return_date', sa.String(length=20), nullable=True, comment='YYYY-MM-DD or +<n>d|w|m'),
        sa.Column('adults', sa.Integer(), nullable=False),
        sa.Column('cabin_class', sa.String(length=20), nullable=False),
        sa.Column('cron_expression', sa.String(length=100), nullable=False),
        sa.Column('price_target', sa.Float(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('last_run', sa.DateTime(), nullable=True),
        sa.Column('next_run', sa.DateTime(), nullable=True),
        sa.Column('last_price', sa.Float(), nullable=True),
        sa.Column('lowest_price', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_scheduled_tasks_due', 'scheduled_tasks', ['active', 'next_run'], unique=False)

    # Create price_history table
    op.create_table(
        'price_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('airlines', sa.JSON(), nullable=False),
        sa.Column('stops', sa.Integer(), nullable=False),
        sa.Column('duration', sa.String(length=50), nullable=False),
        sa.Column('recorded_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['task_id'], ['scheduled_tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_price_history_task_recorded', 'price_history', ['task_id', 'recorded_at'], unique=False)

    # Create price_alerts table
    op.create_table(
        'price_alerts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('origin', sa.String(length=3), nullable=False),
        sa.Column('destination', sa.String(length=3), nullable=False),
        sa.Column('departure_date', sa.Date(), nullable=False),
        sa.Column('return_date', sa.Date(), nullable=True),
        sa.Column('target_price', sa.Float(), nullable=False),
        sa.Column('current_price', sa.Float(), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('flight_offer_id', sa.String(length=100), nullable=True),
        sa.Column('airlines', sa.JSON(), nullable=False),
        sa.Column('triggered', sa.Boolean(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('notified_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_price_alerts_pending', 'price_alerts', ['active', 'triggered', 'expires_at'], unique=False)
    op.create_index('ix_price_alerts_expires_at', 'price_alerts', ['expires_at'], unique=False)

    # Create notifications table
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=True),
        sa.Column('alert_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=30), nullable=False, comment='PRICE_TARGET, NEW_LOW, PRICE_DROP, ALERT_TRIGGERED'),
        sa.Column('channel', sa.String(length=20), nullable=False, comment='EMAIL or TELEGRAM'),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('sent_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['task_id'], ['scheduled_tasks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['alert_id'], ['price_alerts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_task_id'), 'notifications', ['task_id'], unique=False)
    op.create_index(op.f('ix_notifications_alert_id'), 'notifications', ['alert_id'], unique=False)
    op.create_index(op.f('ix_notifications_sent_at'), 'notifications', ['sent_at'], unique=False)


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index(op.f('ix_notifications_sent_at'), table_name='notifications')
    op.drop_index(op.f('ix_notifications_alert_id'), table_name='notifications')
    op.drop_index(op.f('ix_notifications_task_id'), table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('ix_price_alerts_expires_at', table_name='price_alerts')
    op.drop_index('ix_price_alerts_pending', table_name='price_alerts')
    op.drop_table('price_alerts')

    op.drop_index('ix_price_history_task_recorded', table_name='price_history')
    op.drop_table('price_history')

    op.drop_index('ix_scheduled_tasks_due', table_name='scheduled_tasks')
    op.drop_table('scheduled_tasks')
