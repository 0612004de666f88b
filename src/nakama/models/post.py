# src/nakama/models/post.py
"""SQLAlchemy models for posts, their tags, reactions and subscriptions."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nakama.db.session import Base
from nakama.db.time import utcnow
from nakama.id import generate
from nakama.models.user import User


class Post(Base):
    """Short message, optionally carrying image attachments.

    ``attachments`` holds the ordered attachment records as JSON and
    ``reactions`` the aggregated ``{kind, reaction, count}`` counters.
    """

    __tablename__ = "posts"
    __table_args__ = (Index("ix_posts_created_at_id", "created_at", "id"),)

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate)
    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_r18: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    attachments: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    comments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reactions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    user: Mapped[User] = relationship(lazy="joined")


class PostTag(Base):
    """Tag found in a post, or in one of its comments when ``comment_id`` is set."""

    __tablename__ = "post_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    comment_id: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    tag: Mapped[str] = mapped_column(String(100), nullable=False, index=True)


class PostReaction(Base):
    """One emoji reaction of a user on a post."""

    __tablename__ = "post_reactions"

    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    post_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    emoji: Mapped[str] = mapped_column(String(32), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class PostSubscription(Base):
    """Marks a user as interested in notifications about a post."""

    __tablename__ = "post_subscriptions"

    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    post_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
