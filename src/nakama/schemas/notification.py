# src/nakama/schemas/notification.py
"""Notification schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from nakama.models.notification import NotificationKind
from nakama.schemas.common import UTCDateTime
from nakama.schemas.user import User


class Notification(BaseModel):
    """Inbox entry; ``actors`` lists the most recent actor first."""

    id: str
    user_id: str
    kind: NotificationKind
    post_id: str | None = None
    actor_user_ids: list[str] = Field(default_factory=list)
    actors: list[User] = Field(default_factory=list)
    read_at: UTCDateTime | None = None
    issued_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)

    @property
    def read(self) -> bool:
        return self.read_at is not None


class HasUnreadOutput(BaseModel):
    has_unread: bool
