# src/nakama/models/user.py
"""SQLAlchemy models for user accounts and the follow graph."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from nakama.db.session import Base
from nakama.db.time import utcnow
from nakama.id import generate


class User(Base):
    """Account created on the first verified magic link."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate)
    email: Mapped[str] = mapped_column(String(254), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(18), unique=True, nullable=False)
    # Object key inside the avatars bucket.
    avatar: Mapped[str | None] = mapped_column(String(255), nullable=True)
    followers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    following_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


Index("ix_users_username_lower", func.lower(User.username), unique=True)


class Follow(Base):
    """Directed follow edge between two users."""

    __tablename__ = "follows"
    __table_args__ = (
        CheckConstraint("follower_id <> followee_id", name="ck_follows_no_self_follow"),
    )

    follower_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    followee_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
