"""create_notification_engine_tables

Revision ID: 5d2b7e91c4a0
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5d2b7e91c4a0'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create notifications, delivery logs and preferences."""

    # --- notifications ---
    op.create_table('notifications',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.String(length=2000), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False,
                  server_default='info'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('channels', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('recipient_user_id', sa.String(length=450), nullable=True),
        sa.Column('recipient_email', sa.String(length=256), nullable=True),
        sa.Column('recipient_phone', sa.String(length=50), nullable=True),
        sa.Column('sender_user_id', sa.String(length=450), nullable=True),
        sa.Column('tenant_id', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False,
                  server_default='pending'),
        sa.Column('scheduled_for', sa.DateTime(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('delivery_attempts', sa.Integer(), nullable=False,
                  server_default='0'),
        sa.Column('error_message', sa.String(length=1000), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('action_url', sa.String(length=500), nullable=True),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('NOW()')),
        sa.Column('modified_at', sa.DateTime(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False,
                  server_default='false'),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'queued', 'delivered', 'read')",
            name='ck_notifications_status',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_recipient_read',
                    'notifications', ['recipient_user_id', 'read_at'])
    op.create_index('ix_notifications_status_scheduled',
                    'notifications', ['status', 'scheduled_for'])
    op.create_index('ix_notifications_tenant_id', 'notifications', ['tenant_id'])

    # --- notification_delivery_logs (append-only audit trail) ---
    op.create_table('notification_delivery_logs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('notification_id', sa.UUID(), nullable=False),
        sa.Column('channel', sa.Integer(), nullable=False),
        sa.Column('attempt_number', sa.Integer(), nullable=False,
                  server_default='1'),
        sa.Column('is_success', sa.Boolean(), nullable=False),
        sa.Column('provider_name', sa.String(length=100), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('provider_response', sa.Text(), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=False,
                  server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('NOW()')),
        sa.ForeignKeyConstraint(['notification_id'], ['notifications.id'],
                                ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_delivery_logs_notification_id',
                    'notification_delivery_logs', ['notification_id'])

    # --- notification_preferences ---
    op.create_table('notification_preferences',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.String(length=450), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('tenant_id', sa.String(length=100), nullable=True),
        sa.Column('enabled_channels', sa.Integer(), nullable=False,
                  server_default='1'),
        sa.Column('is_enabled', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('minimum_priority', sa.Integer(), nullable=False,
                  server_default='0'),
        sa.Column('email', sa.String(length=256), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('push_endpoint', sa.String(length=500), nullable=True),
        sa.Column('push_public_key', sa.String(length=500), nullable=True),
        sa.Column('push_auth', sa.String(length=500), nullable=True),
        sa.Column('webhook_url', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('NOW()')),
        sa.Column('modified_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'category'),
    )
    op.create_index('ix_notification_preferences_user_id',
                    'notification_preferences', ['user_id'])
    # One default (category NULL) row per user; NULLs are distinct in the
    # unique constraint above.
    op.create_index('uq_notification_preferences_user_default',
                    'notification_preferences', ['user_id'], unique=True,
                    postgresql_where=sa.text('category IS NULL'))


def downgrade() -> None:
    """Drop notification engine tables."""
    op.drop_index('uq_notification_preferences_user_default',
                  table_name='notification_preferences')
    op.drop_index('ix_notification_preferences_user_id',
                  table_name='notification_preferences')
    op.drop_table('notification_preferences')
    op.drop_index('ix_notification_delivery_logs_notification_id',
                  table_name='notification_delivery_logs')
    op.drop_table('notification_delivery_logs')
    op.drop_index('ix_notifications_tenant_id', table_name='notifications')
    op.drop_index('ix_notifications_status_scheduled', table_name='notifications')
    op.drop_index('ix_notifications_recipient_read', table_name='notifications')
    op.drop_table('notifications')
