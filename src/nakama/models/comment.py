# src/nakama/models/comment.py
"""SQLAlchemy models for comments and comment reactions."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nakama.db.session import Base
from nakama.db.time import utcnow
from nakama.id import generate
from nakama.models.user import User


class Comment(Base):
    """Reply attached to a post."""

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate)
    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    reactions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    user: Mapped[User] = relationship(lazy="joined")


class CommentReaction(Base):
    """One emoji reaction of a user on a comment."""

    __tablename__ = "comment_reactions"

    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    comment_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True
    )
    emoji: Mapped[str] = mapped_column(String(32), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
