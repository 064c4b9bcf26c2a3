"""
Initial migration - Create report, message, upvote and user tables

Revision ID: 001_initial
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create all tables."""

    op.create_table(
        'reports',
        sa.Column('doc_id', sa.String(32), primary_key=True),
        sa.Column('id', sa.String(64), nullable=False, unique=True),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('description', sa.String(150), nullable=False),
        sa.Column('image_url', sa.String(500), nullable=False),
        sa.Column('address_line1', sa.String(200), nullable=False),
        sa.Column('address_line2', sa.String(200)),
        sa.Column('county', sa.String(50), nullable=False),
        sa.Column('eircode', sa.String(20), nullable=False),
        sa.Column('location', sa.JSON()),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('assigned', sa.String(128)),
        sa.Column('upvotes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('decline_reason', sa.Text()),
        sa.Column('declined_at', sa.DateTime()),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_index('ix_reports_id', 'reports', ['id'])
    op.create_index('ix_reports_user_id', 'reports', ['user_id'])
    op.create_index('ix_reports_timestamp', 'reports', ['timestamp'])
    op.create_index('idx_report_status', 'reports', ['status'])
    op.create_index('idx_report_assigned_status', 'reports', ['assigned', 'status'])
    op.create_index(
        'uq_report_user_pending', 'reports', ['user_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'messages',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('report_id', sa.String(64)),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
    )

    op.create_index('ix_messages_user_id', 'messages', ['user_id'])
    op.create_index('ix_messages_expires_at', 'messages', ['expires_at'])

    op.create_table(
        'user_upvotes',
        sa.Column('user_id', sa.String(128), primary_key=True),
        sa.Column('votes', sa.JSON(), nullable=False),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('email', sa.String(200)),
        sa.Column('display_name', sa.String(100)),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('users')
    op.drop_table('user_upvotes')
    op.drop_table('messages')
    op.drop_table('reports')
