"""Reaction emoji validation backed by the Unicode emoji table."""

import emoji

VARIATION_SELECTOR_16 = "\ufe0f"


def is_valid(s: str) -> bool:
    """Report whether ``s`` is exactly one emoji of the Unicode table.

    The emoji presentation selector (U+FE0F) is optional: clients differ on
    whether they send it.
    """
    if not s:
        return False
    if s in emoji.EMOJI_DATA:
        return True
    if VARIATION_SELECTOR_16 in s:
        return s.replace(VARIATION_SELECTOR_16, "") in emoji.EMOJI_DATA
    return False
