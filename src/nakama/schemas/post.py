# src/nakama/schemas/post.py
"""Post-related Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from nakama.opengraph import OpenGraph
from nakama.schemas.common import UTCDateTime
from nakama.schemas.user import User


class Attachment(BaseModel):
    """Image stored in the post attachments bucket."""

    path: str
    content_type: str
    file_size: int
    width: int
    height: int
    url: str | None = None


class Reaction(BaseModel):
    """Aggregated counter for one reaction.

    ``reacted`` is only set when there is a logged-in viewer.
    """

    kind: str = "emoji"
    reaction: str
    count: int
    reacted: bool | None = None


class Post(BaseModel):
    """Schema for post information returned by the API."""

    id: str
    user_id: str
    content: str
    is_r18: bool = False
    attachments: list[Attachment] = Field(default_factory=list)
    comments_count: int = 0
    reactions: list[Reaction] = Field(default_factory=list)
    created_at: UTCDateTime
    updated_at: UTCDateTime
    user: User | None = None
    mine: bool = False
    subscribed: bool = False
    previews: list[OpenGraph] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ReactionRequest(BaseModel):
    kind: str = "emoji"
    reaction: str


class UpdatePostRequest(BaseModel):
    content: str | None = None
    is_r18: bool | None = None


class ToggleSubscriptionOutput(BaseModel):
    subscribed: bool
