# src/nakama/schemas/chat.py
"""Chat and direct message schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from nakama.models.chat import ParticipantStatus
from nakama.schemas.common import UTCDateTime
from nakama.schemas.user import User


class Participant(BaseModel):
    """The viewer's side of a chat."""

    user_id: str
    chat_id: str
    other_user_id: str
    status: ParticipantStatus
    has_unread: bool = False
    last_read_at: UTCDateTime | None = None
    last_activity_at: UTCDateTime | None = None
    other_user: User | None = None

    model_config = ConfigDict(from_attributes=True)


class Chat(BaseModel):
    id: str
    created_at: UTCDateTime
    participation: Participant | None = None


class Message(BaseModel):
    id: str
    chat_id: str
    user_id: str
    content: str
    created_at: UTCDateTime
    user: User | None = None
    mine: bool = False

    model_config = ConfigDict(from_attributes=True)


class CreateChatRequest(BaseModel):
    other_user_id: str
    content: str


class CreateMessageRequest(BaseModel):
    content: str
