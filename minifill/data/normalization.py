"""Shared helpers for word and pattern normalization."""

from __future__ import annotations

import re
from typing import FrozenSet, Iterable, Optional, Sequence, Union

from ..core.constants import WILDCARD

WORD_RE = re.compile(r"^[A-Z]+$")
NON_LETTER_RE = re.compile(r"[^A-Z]")

# Wildcards accepted on input; the canonical form is always ``WILDCARD``.
WILDCARD_ALIASES = frozenset({WILDCARD, " ", "?", "_", "*", ""})

PatternLike = Union[str, Sequence[Optional[str]]]


def clean_word(text: str) -> str:
    """Return ``text`` uppercased with every character outside A-Z removed."""

    if not text:
        return ""
    return NON_LETTER_RE.sub("", text.upper())


def is_valid_word(text: str) -> bool:
    """True when ``text`` consists solely of ASCII letters (any case)."""

    if not isinstance(text, str) or not text:
        return False
    return WORD_RE.match(text.upper()) is not None


def normalize_exclusions(words: Optional[Iterable[str]]) -> FrozenSet[str]:
    """Uppercase, strip non-letters, and drop empty entries."""

    if not words:
        return frozenset()
    if isinstance(words, str):
        words = [words]
    cleaned = (clean_word(word) for word in words if isinstance(word, str))
    return frozenset(word for word in cleaned if word)


def canonical_pattern(pattern: PatternLike) -> str:
    """Return the canonical pattern string (uppercase letters and ``.``).

    ``pattern`` is either a string or a sequence describing each position
    (letter or ``None``).
    """

    out = []
    for item in pattern:
        if item is None or item in WILDCARD_ALIASES:
            out.append(WILDCARD)
            continue
        letter = item.upper()
        if len(letter) != 1 or WORD_RE.match(letter) is None:
            raise ValueError(f"Invalid pattern position: {item!r}")
        out.append(letter)
    return "".join(out)


def matches_pattern(word: str, pattern: str) -> bool:
    if len(word) != len(pattern):
        return False
    return all(p == WILDCARD or p == ch for ch, p in zip(word, pattern))


__all__ = [
    "canonical_pattern",
    "clean_word",
    "is_valid_word",
    "matches_pattern",
    "normalize_exclusions",
]
