"""Outgoing e-mail: sender interface and magic-link rendering."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Protocol

from jinja2 import Environment, PackageLoader, select_autoescape

logger = logging.getLogger(__name__)


class Sender(Protocol):
    def send(self, to: str, subject: str, html: str, text: str) -> None: ...


class LoggingSender:
    """Sender that only logs the message; used in development and tests."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str, str]] = []

    def send(self, to: str, subject: str, html: str, text: str) -> None:
        logger.info("mail to %s: %s\n%s", to, subject, text)
        self.sent.append((to, subject, html, text))


_UNITS = (
    ("week", 7 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def human_duration(value: timedelta | float) -> str:
    """Render the largest whole unit of a duration, e.g. ``"2 hours"``."""
    seconds = int(value.total_seconds() if isinstance(value, timedelta) else value)
    for name, size in _UNITS:
        if seconds >= size:
            count = seconds // size
            return f"{count} {name}{'s' if count != 1 else ''}"
    return "0 seconds"


_env = Environment(
    loader=PackageLoader("nakama", "templates"),
    autoescape=select_autoescape(["html"]),
)
_env.filters["human_duration"] = human_duration


def render_magic_link(*, update_email: bool, origin: str, magic_link: str, ttl: timedelta) -> str:
    template = _env.get_template("mail/magic-link.html")
    return template.render(update_email=update_email, origin=origin, magic_link=magic_link, ttl=ttl)
