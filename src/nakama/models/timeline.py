# src/nakama/models/timeline.py
"""Per-viewer timeline rows produced by fan-out on write."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nakama.db.session import Base
from nakama.id import generate
from nakama.models.post import Post


class TimelineItem(Base):
    """A post as it appears in one viewer's feed.

    ``created_at`` copies the post's creation time so the feed can be
    paginated on this table alone.
    """

    __tablename__ = "timeline"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_timeline_user_post"),
        Index("ix_timeline_user_created_at_id", "user_id", "created_at", "id"),
    )

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate)
    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    post: Mapped[Post] = relationship(lazy="joined")
