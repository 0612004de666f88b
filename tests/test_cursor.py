from datetime import UTC, datetime

import base58
import msgpack
import pytest

from nakama.cursor import Cursor, decode_cursor, encode_cursor
from nakama.errs import Error, ErrorKind


def test_round_trip_with_time_value() -> None:
    cursor = Cursor(id="b9nv60e0001", value=datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC))
    assert decode_cursor(encode_cursor(cursor)) == cursor


def test_round_trip_keeps_microseconds() -> None:
    cursor = Cursor(id="b9nv60e0001", value=datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=UTC))
    assert decode_cursor(encode_cursor(cursor)).value == cursor.value


def test_naive_time_is_read_as_utc() -> None:
    naive = datetime(2024, 1, 2, 3, 4, 5)
    decoded = decode_cursor(encode_cursor(Cursor(id="x", value=naive)))
    assert decoded.value == naive.replace(tzinfo=UTC)


@pytest.mark.parametrize("value", [None, "alice", 42])
def test_round_trip_other_values(value) -> None:
    cursor = Cursor(id="c0ffee", value=value)
    encoded = encode_cursor(cursor)
    assert encoded.isalnum()
    assert decode_cursor(encoded) == cursor


@pytest.mark.parametrize(
    "raw",
    [
        "not a cursor!",
        base58.b58encode(msgpack.packb([1, 2])).decode(),
        base58.b58encode(msgpack.packb({"v": 1})).decode(),
        base58.b58encode(msgpack.packb({"i": 7})).decode(),
        base58.b58encode(msgpack.packb({"i": "x", "v": [1]})).decode(),
    ],
)
def test_invalid_cursor(raw: str) -> None:
    with pytest.raises(Error) as excinfo:
        decode_cursor(raw)
    assert excinfo.value.kind is ErrorKind.INVALID_ARGUMENT
    assert excinfo.value.field == "cursor"
