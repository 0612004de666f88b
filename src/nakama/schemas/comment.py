# src/nakama/schemas/comment.py
"""Comment-related Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from nakama.schemas.common import UTCDateTime
from nakama.schemas.post import Reaction
from nakama.schemas.user import User


class Comment(BaseModel):
    id: str
    user_id: str
    post_id: str
    content: str
    reactions: list[Reaction] = Field(default_factory=list)
    created_at: UTCDateTime
    updated_at: UTCDateTime
    user: User | None = None
    mine: bool = False

    model_config = ConfigDict(from_attributes=True)


class CreateCommentRequest(BaseModel):
    content: str


class UpdateCommentRequest(BaseModel):
    content: str
