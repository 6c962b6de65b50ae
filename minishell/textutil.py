"""Small text helpers shared across the shell."""

from __future__ import annotations

import re

WHITESPACE = " \t\n\v\f\r"

_NUMBER = re.compile(r"([+-]?)([0-9]*)")
_WHITESPACE_RUN = re.compile(r"[ \t\n\v\f\r]+")


def atoi(text: str) -> int:
    """Parse a leading decimal integer, ignoring leading whitespace.

    Anything after the digits is ignored; text without digits gives 0.
    """
    match = _NUMBER.match(text.lstrip(WHITESPACE))
    sign, digits = match.groups()
    if not digits:
        return 0
    value = int(digits)
    return -value if sign == "-" else value


def split_words(text: str, sep: str) -> list[str]:
    """Split ``text`` on ``sep`` and drop empty words.

    A separator of a single space means any whitespace character.
    """
    if sep == " ":
        pieces = _WHITESPACE_RUN.split(text)
    else:
        pieces = text.split(sep)
    return [piece for piece in pieces if piece]


def is_all_space(text: str) -> bool:
    """Return True when ``text`` is empty or holds only whitespace."""
    return not text.strip(WHITESPACE)