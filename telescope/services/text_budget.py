"""
Services - Text Budget

Bounds extracted page text to a character budget, cutting at the most
natural boundary near the end of the allowed prefix.
"""

import unicodedata

# Backward scan window; keeps the cost independent of document size.
MAX_BACKWARD_SCAN = 512

NEWLINES = frozenset("\n\r\v\f\x85\u2028\u2029")
SENTENCE_PUNCTUATION = frozenset(".!?;:")

ZERO_WIDTH_JOINER = "\u200d"


def _is_soft_boundary(char: str) -> bool:
    """Whitespace or any Unicode punctuation."""
    return char.isspace() or unicodedata.category(char).startswith("P")


def _extends_cluster(char: str) -> bool:
    """True if char attaches to the preceding character when displayed."""
    if char == ZERO_WIDTH_JOINER:
        return True
    if unicodedata.combining(char):
        return True
    category = unicodedata.category(char)
    if category in ("Mn", "Mc", "Me"):
        return True
    # Variation selectors and emoji skin tone modifiers
    codepoint = ord(char)
    return (
        0xFE00 <= codepoint <= 0xFE0F
        or 0xE0100 <= codepoint <= 0xE01EF
        or 0x1F3FB <= codepoint <= 0x1F3FF
    )


def _hard_end(text: str, end: int) -> int:
    """Move end back so the cut does not split a character cluster."""
    while end > 0 and (
        _extends_cluster(text[end]) or text[end - 1] == ZERO_WIDTH_JOINER
    ):
        end -= 1
    return end


def bound_text(text: str, max_characters: int) -> str:
    """
    Return a prefix of text no longer than max_characters.

    The cut prefers, in order: just before a line break, just after
    sentence punctuation (. ! ? ; :), just before other whitespace or
    punctuation. Only the last MAX_BACKWARD_SCAN characters of the
    allowed prefix are examined; without a boundary there, the hard
    prefix is returned.

    Args:
        text: Text to bound
        max_characters: Budget in characters (code points); negative
            values are treated as 0

    Returns:
        The original text if it fits, otherwise a bounded prefix
    """
    max_characters = max(max_characters, 0)
    if len(text) <= max_characters:
        return text

    end = _hard_end(text, max_characters)
    scan_floor = max(end - MAX_BACKWARD_SCAN, 0)

    sentence_cut = None
    generic_cut = None

    for index in range(end - 1, scan_floor - 1, -1):
        char = text[index]

        if char in NEWLINES:
            if char == "\n" and index > 0 and text[index - 1] == "\r":
                index -= 1
            return text[:index]

        if sentence_cut is None and char in SENTENCE_PUNCTUATION:
            sentence_cut = index + 1
            continue

        if generic_cut is None and _is_soft_boundary(char):
            generic_cut = index

    if sentence_cut is not None:
        return text[:sentence_cut]
    if generic_cut is not None:
        return text[:generic_cut]
    return text[:end]
