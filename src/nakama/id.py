"""Globally unique, roughly time-sortable string identifiers.

Identifiers are 12 raw bytes rendered as 20 lowercase base32hex characters:

* 4 bytes of big-endian Unix seconds,
* 3 bytes derived from the host name,
* 2 bytes of process id,
* 3 bytes of a counter seeded randomly per process.

Because the timestamp leads, the string form sorts by creation second.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import itertools
import os
import socket
import threading
import time

RAW_LEN = 12
ENCODED_LEN = 20

_ALPHABET = frozenset("0123456789abcdefghijklmnopqrstuv")
_MACHINE_ID = hashlib.md5(socket.gethostname().encode("utf-8")).digest()[:3]
_COUNTER = itertools.count(int.from_bytes(os.urandom(3), "big"))
_COUNTER_LOCK = threading.Lock()


def _encode(raw: bytes) -> str:
    return base64.b32hexencode(raw).decode("ascii").rstrip("=").lower()


def _decode(value: str) -> bytes:
    return base64.b32hexdecode(value.upper() + "====")


def generate() -> str:
    """Return a new identifier."""
    with _COUNTER_LOCK:
        counter = next(_COUNTER) & 0xFFFFFF
    raw = (
        int(time.time()).to_bytes(4, "big")
        + _MACHINE_ID
        + (os.getpid() & 0xFFFF).to_bytes(2, "big")
        + counter.to_bytes(3, "big")
    )
    return _encode(raw)


def valid(value: str | None) -> bool:
    """Report whether ``value`` is a well-formed, non-zero identifier."""
    if not isinstance(value, str) or len(value) != ENCODED_LEN:
        return False
    if not set(value) <= _ALPHABET:
        return False
    try:
        raw = _decode(value)
    except (binascii.Error, ValueError):
        return False
    # The final character only carries 1 significant bit.
    if _encode(raw) != value:
        return False
    return any(raw)


def timestamp(value: str) -> int:
    """Return the Unix seconds embedded in a valid identifier."""
    return int.from_bytes(_decode(value)[:4], "big")
