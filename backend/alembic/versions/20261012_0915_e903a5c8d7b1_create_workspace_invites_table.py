"""create_workspace_invites_table

Revision ID: e903a5c8d7b1
Revises: c47e1b9d2f05
Create Date: 2026-10-12 09:15:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM, UUID

revision: str = 'e903a5c8d7b1'
down_revision: Union[str, None] = 'c47e1b9d2f05'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create workspace_invites table. Every stored row is a pending invite."""
    op.create_table(
        'workspace_invites',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('workspace_id', UUID(as_uuid=True), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        # workspace_role already exists (workspace_members migration)
        sa.Column('role', ENUM('member', 'admin', 'owner', name='workspace_role', create_type=False), nullable=False),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('created_by', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('workspace_id', 'email', name='uq_workspace_invites_workspace_email'),
    )

    op.create_index('ix_workspace_invites_token', 'workspace_invites', ['token'], unique=True)
    op.create_index('ix_workspace_invites_workspace_id', 'workspace_invites', ['workspace_id'])
    op.create_index('ix_workspace_invites_email', 'workspace_invites', ['email'])
    op.create_index('ix_workspace_invites_expires_at', 'workspace_invites', ['expires_at'])


def downgrade() -> None:
    """Drop workspace_invites table."""
    op.drop_index('ix_workspace_invites_expires_at', table_name='workspace_invites')
    op.drop_index('ix_workspace_invites_email', table_name='workspace_invites')
    op.drop_index('ix_workspace_invites_workspace_id', table_name='workspace_invites')
    op.drop_index('ix_workspace_invites_token', table_name='workspace_invites')
    op.drop_table('workspace_invites')
