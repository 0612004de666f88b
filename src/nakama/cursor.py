"""Opaque pagination cursors.

A cursor binds an entity id with an optional sort-key value, usually the
entity's creation time. The pair is packed with MessagePack (keys ``i`` and
``v``) and rendered with base58 so it is safe in URLs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import base58
import msgpack

from nakama.db.time import as_utc
from nakama.errs import invalid_argument

CursorValue = datetime | str | int | None


@dataclass(frozen=True)
class Cursor:
    id: str
    value: CursorValue = None


def encode_cursor(cursor: Cursor) -> str:
    payload: dict[str, object] = {"i": cursor.id}
    value = cursor.value
    if isinstance(value, datetime):
        value = as_utc(value)
    if value is not None:
        payload["v"] = value
    packed = msgpack.packb(payload, datetime=True)
    return base58.b58encode(packed).decode("ascii")


def decode_cursor(s: str) -> Cursor:
    """Decode a cursor previously produced by :func:`encode_cursor`.

    Raises:
        nakama.errs.Error: ``invalid_argument`` when ``s`` is not a cursor.
    """
    try:
        data = msgpack.unpackb(base58.b58decode(s), timestamp=3)
    except (ValueError, TypeError, msgpack.exceptions.UnpackException) as exc:
        raise invalid_argument("invalid cursor", "cursor") from exc

    if not isinstance(data, dict):
        raise invalid_argument("invalid cursor", "cursor")
    cursor_id = data.get("i")
    value = data.get("v")
    if not isinstance(cursor_id, str) or not cursor_id:
        raise invalid_argument("invalid cursor", "cursor")
    if value is not None and not isinstance(value, (datetime, str, int)):
        raise invalid_argument("invalid cursor", "cursor")
    return Cursor(id=cursor_id, value=value)
