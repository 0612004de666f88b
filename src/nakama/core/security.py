"""Stateless bearer tokens built on XChaCha20-Poly1305.

Token layout (before base58 encoding)::

    version (1 byte, 0xBA) | issued_at (4 bytes, big-endian seconds)
    | nonce (24 bytes) | ciphertext + tag

The 29-byte header is authenticated as associated data and the plaintext
is the user id.
"""
from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import base58
import nacl.exceptions
import nacl.utils
from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_ABYTES,
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
    crypto_aead_xchacha20poly1305_ietf_KEYBYTES,
    crypto_aead_xchacha20poly1305_ietf_NPUBBYTES,
)

from nakama import id as ids
from nakama.errs import ExpiredToken, InvalidToken, invalid_argument, unauthenticated

VERSION = 0xBA
NONCE_LEN = crypto_aead_xchacha20poly1305_ietf_NPUBBYTES
HEADER_LEN = 1 + 4 + NONCE_LEN


class TokenCodec:
    """Encode and decode user tokens with a 32-byte symmetric key.

    Args:
        key: Raw symmetric key.
        ttl: Lifetime in seconds; ``0`` disables expiry.
        clock: Returns the current Unix time; replaced in tests.
    """

    def __init__(self, key: bytes, ttl: int, *, clock: Callable[[], float] = time.time) -> None:
        if len(key) != crypto_aead_xchacha20poly1305_ietf_KEYBYTES:
            raise ValueError("token key must be 32 bytes")
        self._key = key
        self.ttl = ttl
        self._clock = clock

    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), UTC) + timedelta(seconds=self.ttl)

    def encode(self, user_id: str) -> str:
        issued_at = int(self._clock()) & 0xFFFFFFFF
        nonce = nacl.utils.random(NONCE_LEN)
        header = bytes([VERSION]) + issued_at.to_bytes(4, "big") + nonce
        ciphertext = crypto_aead_xchacha20poly1305_ietf_encrypt(
            user_id.encode("utf-8"), header, nonce, self._key
        )
        return base58.b58encode(header + ciphertext).decode("ascii")

    def decode(self, token: str) -> str:
        """Return the user id carried by ``token``.

        Raises:
            InvalidToken: Malformed token or unknown version.
            ExpiredToken: The token is older than the TTL.
            nakama.errs.Error: ``unauthenticated`` when authentication fails,
                e.g. the token was issued under another key.
        """
        try:
            raw = base58.b58decode(token.strip())
        except ValueError as exc:
            raise InvalidToken() from exc

        if len(raw) < HEADER_LEN + crypto_aead_xchacha20poly1305_ietf_ABYTES or raw[0] != VERSION:
            raise InvalidToken()

        header = raw[:HEADER_LEN]
        issued_at = int.from_bytes(raw[1:5], "big")
        nonce = raw[5:HEADER_LEN]
        try:
            payload = crypto_aead_xchacha20poly1305_ietf_decrypt(
                raw[HEADER_LEN:], header, nonce, self._key
            )
        except nacl.exceptions.CryptoError as exc:
            raise unauthenticated() from exc

        if self.ttl and issued_at + self.ttl < int(self._clock()):
            raise ExpiredToken()

        try:
            user_id = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidToken() from exc
        if not ids.valid(user_id):
            raise invalid_argument("invalid user ID", "user_id")
        return user_id
