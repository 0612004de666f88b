# src/nakama/schemas/publication.py
"""Publication and chapter schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from nakama.models.publication import PublicationKind
from nakama.schemas.common import UTCDateTime
from nakama.schemas.user import User


class Publication(BaseModel):
    id: str
    user_id: str
    kind: PublicationKind
    title: str
    description: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    user: User | None = None

    model_config = ConfigDict(from_attributes=True)


class Chapter(BaseModel):
    id: str
    publication_id: str
    number: int
    title: str
    content: str
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class CreatePublicationRequest(BaseModel):
    kind: PublicationKind
    title: str
    description: str


class UpdatePublicationRequest(BaseModel):
    title: str | None = None
    description: str | None = None


class CreateChapterRequest(BaseModel):
    number: int
    title: str
    content: str


class LatestChapterNumberOutput(BaseModel):
    number: int
