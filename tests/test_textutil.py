import pytest

from nakama import emojis
from nakama.textutil import collect_mentions, collect_tags, collect_urls, smart_trim


def test_collect_mentions_skips_emails_and_duplicates() -> None:
    s = "Hey @john, email me at bob@site.com, cc @alice and @john."
    assert collect_mentions(s) == ["john", "alice"]


def test_collect_mentions_is_idempotent() -> None:
    s = "@Alice @bob_99 and @carol-x, again @Alice"
    mentions = collect_mentions(s)
    again = collect_mentions(" ".join("@" + m for m in mentions))
    assert sorted(again) == sorted(mentions)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("@a", ["a"]),
        ("@1abc", []),
        ("x@abc", []),
        ("(@abc)", ["abc"]),
        ("@abcdefghijklmnopqrstuvwxyz", []),
    ],
)
def test_collect_mentions_boundaries(text: str, expected: list[str]) -> None:
    assert collect_mentions(text) == expected


def test_collect_tags() -> None:
    assert collect_tags("Check out #rust and #GoLang!") == ["rust", "GoLang"]


def test_collect_tags_accepts_unicode_letters() -> None:
    assert collect_tags("#アニメ y #café, otra vez #café") == ["アニメ", "café"]


def test_collect_urls_strips_trailing_punctuation() -> None:
    s = "see https://example.com/a?b=1, and (http://foo.test/x)."
    assert collect_urls(s) == ["https://example.com/a?b=1", "http://foo.test/x"]


def test_smart_trim() -> None:
    assert smart_trim("  hello    world \n\n\n\n bye ") == "hello world\n\nbye"
    assert smart_trim("   \n\t ") == ""


@pytest.mark.parametrize("value", ["👍", "❤️", "🇯🇵"])
def test_valid_emojis(value: str) -> None:
    assert emojis.is_valid(value)


@pytest.mark.parametrize("value", ["", "a", "👍👍", ":thumbsup:"])
def test_invalid_emojis(value: str) -> None:
    assert not emojis.is_valid(value)
