"""Domain error kinds surfaced from the service layer to the HTTP boundary."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of domain errors."""

    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    PERMISSION_DENIED = "permission_denied"
    UNAUTHENTICATED = "unauthenticated"


class Error(Exception):
    """A domain error with an optional field attribution."""

    def __init__(self, kind: ErrorKind, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field is not None:
            return f"{self.kind.value} (field: {self.field}): {self.message}"
        return f"{self.kind.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value!r}, {self.message!r}, field={self.field!r})"


def invalid_argument(message: str, field: str | None = None) -> Error:
    return Error(ErrorKind.INVALID_ARGUMENT, message, field)


def not_found(message: str, field: str | None = None) -> Error:
    return Error(ErrorKind.NOT_FOUND, message, field)


def already_exists(message: str, field: str | None = None) -> Error:
    return Error(ErrorKind.ALREADY_EXISTS, message, field)


def permission_denied(message: str, field: str | None = None) -> Error:
    return Error(ErrorKind.PERMISSION_DENIED, message, field)


def unauthenticated(message: str = "unauthenticated") -> Error:
    return Error(ErrorKind.UNAUTHENTICATED, message)


class InvalidToken(Error):
    """Raised when a bearer token is malformed."""

    def __init__(self) -> None:
        super().__init__(ErrorKind.INVALID_ARGUMENT, "invalid token", "token")


class ExpiredToken(Error):
    """Raised when a bearer token outlived its TTL."""

    def __init__(self) -> None:
        super().__init__(ErrorKind.UNAUTHENTICATED, "expired token")
