"""initial file sharing schema

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18 09:12:44.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '20261018_01'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'user_settings',
        sa.Column('id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('private_files_by_default', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('require_approval_for_access', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email_notifications_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('push_notifications_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notification_types', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'files',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('storage_path', sa.String(), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('mime_type', sa.String(), nullable=False, server_default='application/octet-stream'),
        sa.Column('shared', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_encrypted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('original_type', sa.String(), nullable=True),
        sa.Column('encryption_metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_files_owner_id', 'files', ['owner_id'])

    op.create_table(
        'file_keys',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('file_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('files.id', ondelete='CASCADE'), nullable=False),
        sa.Column('encrypted_key', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('file_id', name='uq_file_keys_file_id'),
    )

    op.create_table(
        'file_access_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('file_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('files.id', ondelete='CASCADE'), nullable=False),
        sa.Column('requester_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('response_message', sa.Text(), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('requester_id <> owner_id', name='ck_access_requests_not_self'),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name='ck_access_requests_status',
        ),
    )
    op.create_index('ix_file_access_requests_file_id', 'file_access_requests', ['file_id'])
    op.create_index('ix_file_access_requests_requester_id', 'file_access_requests', ['requester_id'])
    op.create_index('ix_file_access_requests_owner_id', 'file_access_requests', ['owner_id'])
    op.create_index(
        'uq_access_requests_pending_pair',
        'file_access_requests',
        ['file_id', 'requester_id'],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'notifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('uq_access_requests_pending_pair', table_name='file_access_requests')
    op.drop_index('ix_file_access_requests_owner_id', table_name='file_access_requests')
    op.drop_index('ix_file_access_requests_requester_id', table_name='file_access_requests')
    op.drop_index('ix_file_access_requests_file_id', table_name='file_access_requests')
    op.drop_table('file_access_requests')
    op.drop_table('file_keys')
    op.drop_index('ix_files_owner_id', table_name='files')
    op.drop_table('files')
    op.drop_table('user_settings')
    op.drop_table('users')
