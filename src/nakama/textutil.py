"""Text helpers shared by posts, comments and messages."""

from __future__ import annotations

import re
from collections.abc import Iterable

_MULTI_SPACE = re.compile(r"\s+")
_MULTI_NEWLINE = re.compile(r"\n{3,}")

# A mention must not be preceded by a word character, which rules out e-mail
# addresses such as ``bob@site.com``.
_MENTION = re.compile(r"\B@([a-zA-Z][a-zA-Z0-9_-]{0,17})(?:\b[^@]|$)", re.ASCII)
_TAG = re.compile(r"\B#(\w+)(?:\b[^#]|$)")
_URL = re.compile(r"\bhttps?://[^\s<>\"'`]+", re.IGNORECASE)
_URL_TRAILING = ".,;:!?)]}'\""


def smart_trim(s: str) -> str:
    """Collapse runs of whitespace per line and squeeze blank lines.

    >>> smart_trim("  hello    world \\n\\n\\n\\n bye ")
    'hello world\\n\\nbye'
    """
    lines = [_MULTI_SPACE.sub(" ", line).strip() for line in s.splitlines()]
    return _MULTI_NEWLINE.sub("\n\n", "\n".join(lines)).strip()


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


def collect_mentions(s: str) -> list[str]:
    """Return the usernames mentioned in ``s``, first occurrence first."""
    return _unique(m.group(1) for m in _MENTION.finditer(s))


def collect_tags(s: str) -> list[str]:
    """Return the ``#tags`` found in ``s``, first occurrence first."""
    return _unique(m.group(1) for m in _TAG.finditer(s))


def collect_urls(s: str) -> list[str]:
    """Return the http(s) URLs found in ``s`` without trailing punctuation."""
    return _unique(m.group(0).rstrip(_URL_TRAILING) for m in _URL.finditer(s))
