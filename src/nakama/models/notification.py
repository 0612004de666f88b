# src/nakama/models/notification.py
"""Models for coalesced notifications and their actors."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nakama.db.session import Base
from nakama.db.time import utcnow
from nakama.id import generate
from nakama.models.user import User


class NotificationKind(str, Enum):
    """What happened to the recipient."""

    FOLLOW = "follow"
    COMMENT = "comment"
    POST_MENTION = "post_mention"
    COMMENT_MENTION = "comment_mention"


# Predicates of the partial unique indexes that coalescing inserts target.
UNREAD_SUBJECT_WHERE = "read_at IS NULL AND kind IN ('comment', 'comment_mention')"
UNREAD_FOLLOW_WHERE = "read_at IS NULL AND kind = 'follow'"


class Notification(Base):
    """Inbox entry for ``user_id``; unread entries accumulate actors."""

    __tablename__ = "notifications"
    __table_args__ = (
        # At most one unread comment/comment_mention notification per post and recipient.
        Index(
            "uq_notifications_unread_subject",
            "user_id",
            "kind",
            "post_id",
            unique=True,
            postgresql_where=text(UNREAD_SUBJECT_WHERE),
            sqlite_where=text(UNREAD_SUBJECT_WHERE),
        ),
        # At most one unread follow notification per recipient.
        Index(
            "uq_notifications_unread_follow",
            "user_id",
            "kind",
            unique=True,
            postgresql_where=text(UNREAD_FOLLOW_WHERE),
            sqlite_where=text(UNREAD_FOLLOW_WHERE),
        ),
    )

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate)
    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: Mapped[NotificationKind] = mapped_column(
        SAEnum(
            NotificationKind,
            native_enum=False,
            length=20,
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=False,
    )
    post_id: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("posts.id", ondelete="CASCADE"), nullable=True
    )
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    actors: Mapped[list[NotificationActor]] = relationship(
        back_populates="notification",
        cascade="all, delete-orphan",
        order_by="NotificationActor.id.desc()",
        lazy="selectin",
    )

    @property
    def actor_user_ids(self) -> list[str]:
        """Actor ids, most recent first."""
        return [actor.user_id for actor in self.actors]


class NotificationActor(Base):
    """Actor attached to a notification; higher ``id`` means more recent."""

    __tablename__ = "notification_actors"
    __table_args__ = (
        UniqueConstraint("notification_id", "user_id", name="uq_notification_actors_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    notification_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    notification: Mapped[Notification] = relationship(back_populates="actors")
    user: Mapped[User] = relationship(lazy="joined")
