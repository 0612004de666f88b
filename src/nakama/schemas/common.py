"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, Field

from nakama.db.time import as_utc

T = TypeVar("T")

# SQLite hands back naive datetimes; every timestamp leaving the service is UTC-aware.
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class PageInfo(BaseModel):
    """Cursors and flags describing where a page sits in the full list."""

    start_cursor: str | None = Field(None, description="Cursor of the first item of the page.")
    end_cursor: str | None = Field(None, description="Cursor of the last item of the page.")
    has_next_page: bool = False
    has_previous_page: bool = False


class Page(BaseModel, Generic[T]):
    """A slice of a keyset-paginated list."""

    items: list[T] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)


class SimplePageInfo(BaseModel):
    """Offset pagination state for ranked results such as searches."""

    has_next_page: bool = False
    has_previous_page: bool = False
    current_page: int = 1
    previous_page: int | None = None
    next_page: int | None = None


class SimplePage(BaseModel, Generic[T]):
    items: list[T] = Field(default_factory=list)
    page_info: SimplePageInfo = Field(default_factory=SimplePageInfo)
