# src/nakama/models/auth.py
"""Single-use e-mail verification codes backing the magic-link login."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from nakama.db.session import Base
from nakama.db.time import utcnow


class EmailVerificationCode(Base):
    """Code mailed to ``email``; ``user_id`` is set when changing an account's e-mail."""

    __tablename__ = "email_verification_codes"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(
        String(20), ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
