# src/nakama/models/publication.py
"""Models for serialized publications (manga, novels, tutorials) and chapters."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nakama.db.session import Base
from nakama.db.time import utcnow
from nakama.id import generate
from nakama.models.user import User


class PublicationKind(str, Enum):
    MANGA = "manga"
    NOVEL = "novel"
    TUTORIAL = "tutorial"

    @property
    def plural(self) -> str:
        return {"manga": "manga", "novel": "novels", "tutorial": "tutorials"}[self.value]


class Publication(Base):
    __tablename__ = "publications"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate)
    user_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: Mapped[PublicationKind] = mapped_column(
        SAEnum(
            PublicationKind,
            native_enum=False,
            length=20,
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    user: Mapped[User] = relationship(lazy="joined")


class Chapter(Base):
    __tablename__ = "chapters"
    __table_args__ = (
        UniqueConstraint("publication_id", "number", name="uq_chapters_publication_number"),
    )

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate)
    publication_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("publications.id", ondelete="CASCADE"), nullable=False
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
