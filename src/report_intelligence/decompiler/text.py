"""Text normalization and line helpers shared by every detector."""

from __future__ import annotations

import re
from typing import Final

_TRAILING_SPACE_RE: Final[re.Pattern[str]] = re.compile(r"[ \t]+$", flags=re.MULTILINE)
_BLANK_RUN_RE: Final[re.Pattern[str]] = re.compile(r"\n{3,}")
_WHITESPACE_RE: Final[re.Pattern[str]] = re.compile(r"\s+")
_TAB_WIDTH: Final[int] = 4


def normalize_text(raw_text: str) -> str:
    """Canonicalize line endings and whitespace before detection.

    CRLF becomes LF, tabs become four spaces, trailing spaces are dropped per
    line, the whole text is trimmed and runs of three or more newlines collapse
    to a single blank line.
    """

    text = raw_text.replace("\r\n", "\n")
    text = text.replace("\t", " " * _TAB_WIDTH)
    text = _TRAILING_SPACE_RE.sub("", text)
    text = text.strip()
    return _BLANK_RUN_RE.sub("\n\n", text)


def split_lines(text: str) -> tuple[str, ...]:
    """Split normalized text into lines; the empty document has no lines."""

    if not text:
        return ()
    return tuple(text.split("\n"))


def count_words(text: str) -> int:
    return len([word for word in _WHITESPACE_RE.split(text.strip()) if word])


def context_window(text: str, start: int, length: int, *, radius: int = 50) -> str:
    """Return ``radius`` characters either side of ``text[start:start + length]``."""

    lower = max(0, start - radius)
    upper = min(len(text), start + length + radius)
    return text[lower:upper]


__all__ = ["context_window", "count_words", "normalize_text", "split_lines"]
