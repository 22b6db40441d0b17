"""create_notifications_tables

Revision ID: 5a6c0d3e9f28
Revises: e903a5c8d7b1
Create Date: 2026-10-12 09:20:00.000000
"""
from __future__ import annotations

from alembic import op

revision = "5a6c0d3e9f28"
down_revision = "e903a5c8d7b1"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        "CREATE TYPE notification_type AS ENUM "
        "('WORKSPACE_INVITE', 'INVITE_ACCEPTED', 'REMOVED_FROM_WORKSPACE', 'MENTION')"
    )

    op.execute("""
        CREATE TABLE notifications (
            id           UUID        PRIMARY KEY DEFAULT gen_random_uuid(),
            workspace_id UUID        NOT NULL REFERENCES workspaces(id) ON DELETE CASCADE,
            user_id      UUID        NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type         notification_type NOT NULL,
            title        VARCHAR(255) NOT NULL,
            body         TEXT,
            entity_type  VARCHAR(50),
            entity_id    UUID,
            is_read      BOOLEAN     NOT NULL DEFAULT false,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)

    op.execute("CREATE INDEX ix_notifications_workspace_id ON notifications(workspace_id)")
    op.execute("CREATE INDEX ix_notifications_user_id ON notifications(user_id)")
    op.execute("CREATE INDEX ix_notifications_user_is_read ON notifications(user_id, is_read)")
    op.execute("CREATE INDEX ix_notifications_created_at ON notifications(created_at)")

    op.execute("""
        CREATE TABLE notification_preferences (
            user_id     UUID    PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            at_mentions BOOLEAN NOT NULL DEFAULT true
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notification_preferences")
    op.execute("DROP TABLE IF EXISTS notifications")
    op.execute("DROP TYPE IF EXISTS notification_type")
