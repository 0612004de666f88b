"""unread follow notification index

Revision ID: 8f3d2c6b1a40
Revises: 5c1e0a9d2b71
Create Date: 2026-10-26 09:41:17.882013

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "8f3d2c6b1a40"
down_revision: Union[str, Sequence[str], None] = "5c1e0a9d2b71"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Allow a single unread follow notification per recipient."""
    unread_follow = sa.text("read_at IS NULL AND kind = 'follow'")
    op.create_index(
        "uq_notifications_unread_follow",
        "notifications",
        ["user_id", "kind"],
        unique=True,
        postgresql_where=unread_follow,
        sqlite_where=unread_follow,
    )


def downgrade() -> None:
    op.drop_index("uq_notifications_unread_follow", table_name="notifications")
