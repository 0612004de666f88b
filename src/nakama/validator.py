"""Accumulate per-field validation messages into a single domain error."""

from __future__ import annotations

from nakama.errs import Error, ErrorKind


class ValidationErrors(Error):
    """Invalid-argument error carrying every failed field in insertion order."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        self.errors = {field: list(messages) for field, messages in errors.items()}
        first_field = next(iter(self.errors))
        super().__init__(ErrorKind.INVALID_ARGUMENT, self.errors[first_field][0], first_field)

    def __str__(self) -> str:
        lines: list[str] = []
        for field, messages in self.errors.items():
            lines.append(f"{field}: ")
            lines.extend(f"\t- {message}" for message in messages)
        return "\n".join(lines)


class Validator:
    """Collects ``(field, message)`` pairs.

    Example:
        >>> v = Validator()
        >>> v.check(len(title) <= 100, "title", "Title cannot exceed 100 characters")
        >>> v.raise_if_errors()
    """

    def __init__(self) -> None:
        self.errors: dict[str, list[str]] = {}

    def add_error(self, field: str, message: str) -> None:
        self.errors.setdefault(field, []).append(message)

    def check(self, ok: bool, field: str, message: str) -> None:
        if not ok:
            self.add_error(field, message)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def first(self, field: str) -> str | None:
        messages = self.errors.get(field)
        return messages[0] if messages else None

    def all(self, field: str) -> list[str]:
        return list(self.errors.get(field, []))

    def as_error(self) -> ValidationErrors | None:
        if not self.has_errors:
            return None
        return ValidationErrors(self.errors)

    def raise_if_errors(self) -> None:
        err = self.as_error()
        if err is not None:
            raise err
