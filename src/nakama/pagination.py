"""Keyset pagination over SQLAlchemy selects.

Forward pages (``first``/``after``) walk ``(sort_key DESC, id DESC)``; backward
pages (``last``/``before``) walk ``(sort_key ASC, id ASC)`` and are reversed
before being returned, so callers always see newest first. One extra row is
fetched to learn whether another page exists.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from sqlalchemy import Select, and_, or_
from sqlalchemy.orm import Session

from nakama.cursor import Cursor, decode_cursor, encode_cursor
from nakama.errs import invalid_argument
from nakama.schemas.common import PageInfo

DEFAULT_PAGE_SIZE = 3
MAX_PAGE_SIZE = 200

T = TypeVar("T")


@dataclass(frozen=True)
class PageArgs:
    first: int | None = None
    after: str | None = None
    last: int | None = None
    before: str | None = None

    @property
    def backward(self) -> bool:
        return self.last is not None or self.before is not None

    def validate(self) -> None:
        if self.first is not None and self.last is not None:
            raise invalid_argument("cannot specify both first and last")
        if self.first is not None and self.first < 1:
            raise invalid_argument("first must be greater than 0", "first")
        if self.last is not None and self.last < 1:
            raise invalid_argument("last must be greater than 0", "last")
        if self.first is not None and self.first > MAX_PAGE_SIZE:
            raise invalid_argument("first overflow", "first")
        if self.last is not None and self.last > MAX_PAGE_SIZE:
            raise invalid_argument("last overflow", "last")


@dataclass(frozen=True)
class ParsedPageArgs:
    first: int | None
    after: Cursor | None
    last: int | None
    before: Cursor | None

    @property
    def backward(self) -> bool:
        return self.last is not None or self.before is not None

    @property
    def size(self) -> int:
        requested = self.last if self.backward else self.first
        return requested if requested is not None else DEFAULT_PAGE_SIZE


def parse_page_args(args: PageArgs) -> ParsedPageArgs:
    """Validate ``args`` and decode its cursors."""
    args.validate()
    return ParsedPageArgs(
        first=args.first,
        after=decode_cursor(args.after) if args.after else None,
        last=args.last,
        before=decode_cursor(args.before) if args.before else None,
    )


def _keyset_condition(sort_column: Any, id_column: Any, cursor: Cursor, *, greater: bool) -> Any:
    if sort_column is None:
        return id_column > cursor.id if greater else id_column < cursor.id
    if cursor.value is None:
        raise invalid_argument("invalid cursor", "cursor")
    if greater:
        return or_(
            sort_column > cursor.value,
            and_(sort_column == cursor.value, id_column > cursor.id),
        )
    return or_(
        sort_column < cursor.value,
        and_(sort_column == cursor.value, id_column < cursor.id),
    )


def apply_keyset(
    stmt: Select[Any],
    args: ParsedPageArgs,
    *,
    id_column: Any,
    sort_column: Any = None,
) -> Select[Any]:
    """Add the cursor filter, ordering and ``LIMIT size + 1`` to ``stmt``."""
    if args.after is not None:
        stmt = stmt.where(_keyset_condition(sort_column, id_column, args.after, greater=False))
    elif args.before is not None:
        stmt = stmt.where(_keyset_condition(sort_column, id_column, args.before, greater=True))

    columns = [id_column] if sort_column is None else [sort_column, id_column]
    if args.backward:
        stmt = stmt.order_by(*(column.asc() for column in columns))
    else:
        stmt = stmt.order_by(*(column.desc() for column in columns))
    return stmt.limit(args.size + 1)


def apply_page_info(
    items: Sequence[T],
    args: ParsedPageArgs,
    cursor_for: Callable[[T], Cursor],
) -> tuple[list[T], PageInfo]:
    """Trim the look-ahead row, restore newest-first order and build cursors."""
    out = list(items)
    info = PageInfo()
    if not out:
        return out, info

    size = args.size
    if args.backward:
        info.has_previous_page = len(out) > size
        out = out[:size]
        info.has_next_page = args.before is not None
        out.reverse()
    else:
        info.has_next_page = len(out) > size
        out = out[:size]
        info.has_previous_page = args.after is not None

    info.start_cursor = encode_cursor(cursor_for(out[0]))
    info.end_cursor = encode_cursor(cursor_for(out[-1]))
    return out, info


def paginate(
    db: Session,
    stmt: Select[Any],
    args: PageArgs,
    *,
    id_column: Any,
    cursor_for: Callable[[Any], Cursor],
    sort_column: Any = None,
) -> tuple[list[Any], PageInfo]:
    """Run ``stmt`` as one keyset page of ORM entities."""
    parsed = parse_page_args(args)
    stmt = apply_keyset(stmt, parsed, id_column=id_column, sort_column=sort_column)
    rows = db.scalars(stmt).unique().all()
    return apply_page_info(rows, parsed, cursor_for)
