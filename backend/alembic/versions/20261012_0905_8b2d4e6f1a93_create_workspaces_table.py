"""create_workspaces_table

Revision ID: 8b2d4e6f1a93
Revises: 3f1a9c2e7b40
Create Date: 2026-10-12 09:05:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = '8b2d4e6f1a93'
down_revision: Union[str, None] = '3f1a9c2e7b40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create workspaces table."""
    op.create_table(
        'workspaces',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_index('ix_workspaces_slug', 'workspaces', ['slug'], unique=True)


def downgrade() -> None:
    """Drop workspaces table."""
    op.drop_index('ix_workspaces_slug', table_name='workspaces')
    op.drop_table('workspaces')
