# src/nakama/schemas/timeline.py
"""Timeline schemas."""

from __future__ import annotations

from pydantic import BaseModel

from nakama.schemas.common import UTCDateTime
from nakama.schemas.post import Post


class TimelineItem(BaseModel):
    id: str
    user_id: str
    post_id: str
    created_at: UTCDateTime
    post: Post | None = None
