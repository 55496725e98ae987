"""add whatsapp notification log and daily run log

Revision ID: b7d8e9f0a1b2
Revises: a1c2e3f4a5b6
Create Date: 2026-01-11 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'b7d8e9f0a1b2'
down_revision: Union[str, None] = 'a1c2e3f4a5b6'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One row per attempted member message (append-only)
    op.create_table(
        'whatsapp_notifications',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('member_id', sa.Uuid(), sa.ForeignKey('members.id'), nullable=True),
        sa.Column('notification_type', sa.String(40), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('branch_id', sa.Uuid(), sa.ForeignKey('branches.id'), nullable=True),
        sa.Column('recipient_phone', sa.String(32), nullable=True),
        sa.Column('recipient_name', sa.String(255), nullable=True),
        sa.Column('message_content', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('is_manual', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('sent_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_whatsapp_notifications_member_id', 'whatsapp_notifications', ['member_id'])
    op.create_index('ix_whatsapp_notifications_status', 'whatsapp_notifications', ['status'])
    op.create_index(
        'ix_whatsapp_notifications_member_type_sent',
        'whatsapp_notifications',
        ['member_id', 'notification_type', 'sent_at'],
    )

    # Daily run log; unique per (summary_type, run_date) so a second concurrent run cannot claim the day
    op.create_table(
        'admin_summary_log',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('summary_type', sa.String(64), nullable=False),
        sa.Column('run_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='running'),
        sa.Column('member_ids', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('sent_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('summary_type', 'run_date', name='uq_admin_summary_log_type_date'),
    )
    op.create_index('ix_admin_summary_log_sent_at', 'admin_summary_log', ['sent_at'])


def downgrade() -> None:
    op.drop_table('admin_summary_log')
    op.drop_table('whatsapp_notifications')
