# src/nakama/schemas/user.py
"""User-related Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from nakama.schemas.common import UTCDateTime


class User(BaseModel):
    """Public summary of an account, embedded in posts, comments and messages."""

    id: str
    username: str
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserRelationship(BaseModel):
    """How a user relates to the logged-in viewer."""

    follows_you: bool = Field(False, description="The user follows the viewer.")
    followed_by_you: bool = Field(False, description="The viewer follows the user.")
    is_me: bool = Field(False, description="The user is the viewer.")


class UserProfile(User):
    """Full profile; ``email`` is only present for the viewer's own profile."""

    email: str | None = None
    followers_count: int = 0
    following_count: int = 0
    created_at: UTCDateTime
    relationship: UserRelationship | None = None


class ToggleFollowOutput(BaseModel):
    following: bool
    followers_count: int


class AuthOutput(BaseModel):
    """Issued after a successful login."""

    user: User
    token: str
    expires_at: UTCDateTime


class TokenOutput(BaseModel):
    token: str
    expires_at: UTCDateTime


class SendMagicLinkRequest(BaseModel):
    email: str
    redirect_uri: str


class DevLoginRequest(BaseModel):
    email: str
