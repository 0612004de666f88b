# src/nakama/models/chat.py
"""Models describing private chats between two users."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nakama.db.session import Base
from nakama.db.time import utcnow
from nakama.id import generate
from nakama.models.user import User


class ParticipantStatus(str, Enum):
    """Gate that decides who may send the next message in a chat."""

    PENDING_SENDER = "pending_sender"
    PENDING_RECEIVER = "pending_receiver"
    ACTIVE = "active"


class Chat(Base):
    """Conversation between exactly two participants."""

    __tablename__ = "chats"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Participant(Base):
    """One side of a chat, as seen by ``user_id``."""

    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("user_id", "other_user_id", name="uq_participants_user_other_user"),
    )

    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    chat_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("chats.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    other_user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[ParticipantStatus] = mapped_column(
        SAEnum(
            ParticipantStatus,
            native_enum=False,
            length=20,
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=False,
    )
    has_unread: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_activity_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    chat: Mapped[Chat] = relationship(lazy="joined")
    other_user: Mapped[User] = relationship(foreign_keys=[other_user_id], lazy="joined")


class Message(Base):
    """Text message written into a chat."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate)
    chat_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    user: Mapped[User] = relationship(lazy="joined")
