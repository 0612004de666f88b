"""initial schema

Revision ID: 5c1e0a9d2b71
Revises:
Create Date: 2026-10-19 10:12:44.301522

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e0a9d2b71"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID = sa.String(length=20)
TS = sa.DateTime(timezone=True)


def _id(name: str = "id") -> sa.Column:
    return sa.Column(name, ID, nullable=False)


def _fk(name: str, target: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(name, ID, sa.ForeignKey(target, ondelete="CASCADE"), nullable=nullable)


def upgrade() -> None:
    """Create users, posts, comments, chats, notifications and publications."""
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("username", sa.String(length=18), nullable=False),
        sa.Column("avatar", sa.String(length=255), nullable=True),
        sa.Column("followers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("following_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("username"),
    )
    op.create_index(
        "ix_users_username_lower", "users", [sa.text("lower(username)")], unique=True
    )

    op.create_table(
        "follows",
        _fk("follower_id", "users.id"),
        _fk("followee_id", "users.id"),
        sa.Column("created_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("follower_id", "followee_id"),
        sa.CheckConstraint("follower_id <> followee_id", name="ck_follows_no_self_follow"),
    )
    op.create_index("ix_follows_followee_id", "follows", ["followee_id"])

    op.create_table(
        "email_verification_codes",
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False),
        _fk("user_id", "users.id", nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("code"),
    )
    op.create_index(
        "ix_email_verification_codes_email", "email_verification_codes", ["email"]
    )

    op.create_table(
        "posts",
        _id(),
        _fk("user_id", "users.id"),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_r18", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("comments_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reactions", sa.JSON(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_posts_user_id", "posts", ["user_id"])
    op.create_index("ix_posts_created_at_id", "posts", ["created_at", "id"])

    op.create_table(
        "comments",
        _id(),
        _fk("user_id", "users.id"),
        _fk("post_id", "posts.id"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("reactions", sa.JSON(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_post_id", "comments", ["post_id"])

    op.create_table(
        "post_tags",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _fk("post_id", "posts.id"),
        _fk("comment_id", "comments.id", nullable=True),
        sa.Column("tag", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_tags_post_id", "post_tags", ["post_id"])
    op.create_index("ix_post_tags_comment_id", "post_tags", ["comment_id"])
    op.create_index("ix_post_tags_tag", "post_tags", ["tag"])

    for table, subject in (("post_reactions", "post_id"), ("comment_reactions", "comment_id")):
        op.create_table(
            table,
            _fk("user_id", "users.id"),
            _fk(subject, f"{subject.removesuffix('_id')}s.id"),
            sa.Column("emoji", sa.String(length=32), nullable=False),
            sa.Column("created_at", TS, nullable=False),
            sa.PrimaryKeyConstraint("user_id", subject, "emoji"),
        )

    op.create_table(
        "post_subscriptions",
        _fk("user_id", "users.id"),
        _fk("post_id", "posts.id"),
        sa.Column("created_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("user_id", "post_id"),
    )
    op.create_index("ix_post_subscriptions_post_id", "post_subscriptions", ["post_id"])

    op.create_table(
        "timeline",
        _id(),
        _fk("user_id", "users.id"),
        _fk("post_id", "posts.id"),
        sa.Column("created_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "post_id", name="uq_timeline_user_post"),
    )
    op.create_index(
        "ix_timeline_user_created_at_id", "timeline", ["user_id", "created_at", "id"]
    )

    op.create_table(
        "chats",
        _id(),
        sa.Column("created_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "participants",
        _fk("user_id", "users.id"),
        _fk("chat_id", "chats.id"),
        _fk("other_user_id", "users.id"),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("has_unread", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_read_at", TS, nullable=True),
        sa.Column("last_activity_at", TS, nullable=True),
        sa.PrimaryKeyConstraint("user_id", "chat_id"),
        sa.UniqueConstraint("user_id", "other_user_id", name="uq_participants_user_other_user"),
    )
    op.create_index("ix_participants_chat_id", "participants", ["chat_id"])
    op.create_table(
        "messages",
        _id(),
        _fk("chat_id", "chats.id"),
        _fk("user_id", "users.id"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_messages_chat_id", "messages", ["chat_id"])

    op.create_table(
        "notifications",
        _id(),
        _fk("user_id", "users.id"),
        sa.Column("kind", sa.String(length=20), nullable=False),
        _fk("post_id", "posts.id", nullable=True),
        sa.Column("read_at", TS, nullable=True),
        sa.Column("issued_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    unread_subject = sa.text("read_at IS NULL AND kind IN ('comment', 'comment_mention')")
    op.create_index(
        "uq_notifications_unread_subject",
        "notifications",
        ["user_id", "kind", "post_id"],
        unique=True,
        postgresql_where=unread_subject,
        sqlite_where=unread_subject,
    )
    op.create_table(
        "notification_actors",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "notification_id",
            ID,
            sa.ForeignKey("notifications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _fk("user_id", "users.id"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("notification_id", "user_id", name="uq_notification_actors_pair"),
    )
    op.create_index("ix_notification_actors_user_id", "notification_actors", ["user_id"])

    op.create_table(
        "publications",
        _id(),
        _fk("user_id", "users.id"),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_publications_user_id", "publications", ["user_id"])
    op.create_table(
        "chapters",
        _id(),
        _fk("publication_id", "publications.id"),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("publication_id", "number", name="uq_chapters_publication_number"),
    )


def downgrade() -> None:
    """Drop every table, children first."""
    for table in (
        "chapters",
        "publications",
        "notification_actors",
        "notifications",
        "messages",
        "participants",
        "chats",
        "timeline",
        "post_subscriptions",
        "comment_reactions",
        "post_reactions",
        "post_tags",
        "comments",
        "posts",
        "email_verification_codes",
        "follows",
        "users",
    ):
        op.drop_table(table)
