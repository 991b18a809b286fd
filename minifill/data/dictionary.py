"""Word dictionary and score index."""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..core.constants import (
    DEFAULT_WORD_SCORE,
    MAX_SCORE,
    MIN_SCORE,
    SUPPORTED_LENGTHS,
)
from ..core.exceptions import DictionaryLoadError
from ..utils.logger import get_logger
from .normalization import WORD_RE


LOGGER = get_logger(__name__)

WORD_LIST_TEMPLATE = "{length}_letter_words.txt"
MASTER_SEPARATOR = ";"

SCORE_BUCKETS: Tuple[Tuple[str, int, int], ...] = (
    ("1-10", MIN_SCORE, 10),
    ("11-25", 11, 25),
    ("26-50", 26, 50),
    ("51-75", 51, 75),
    ("76-100", 76, MAX_SCORE),
)


@dataclass
class DictionaryConfig:
    """Configuration for loading the per-length word lists."""

    path: Path | str
    lengths: Sequence[int] = SUPPORTED_LENGTHS
    default_score: int = DEFAULT_WORD_SCORE
    filename_template: str = WORD_LIST_TEMPLATE

    def file_for(self, length: int) -> Path:
        return Path(self.path) / self.filename_template.format(length=length)


@dataclass(frozen=True)
class WordEntry:
    """A dictionary word with its score in [0, 100]."""

    word: str
    score: int

    @property
    def length(self) -> int:
        return len(self.word)


def clamp_score(value: float) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, int(round(value))))


def parse_word_line(line: str, default_score: int = DEFAULT_WORD_SCORE) -> Optional[Tuple[str, int]]:
    """Parse ``WORD [score]``.

    Returns ``None`` for blank lines and ``#`` comments and raises
    :class:`ValueError` for lines that must be skipped with a warning.
    """

    text = line.strip()
    if not text or text.startswith("#"):
        return None
    parts = text.split()
    if len(parts) > 2:
        raise ValueError(f"unexpected trailing fields in {text!r}")
    word = parts[0].upper()
    if not WORD_RE.match(word):
        raise ValueError(f"non-letter characters in {parts[0]!r}")
    if len(parts) == 1:
        return word, clamp_score(default_score)
    try:
        score = float(parts[1])
    except ValueError as exc:
        raise ValueError(f"invalid score {parts[1]!r}") from exc
    if not math.isfinite(score):
        raise ValueError(f"invalid score {parts[1]!r}")
    return word, clamp_score(score)


def parse_master_line(line: str) -> Optional[Tuple[str, int]]:
    """Parse the ``WORD;SCORE`` master dictionary format."""

    text = line.strip()
    if not text or text.startswith("#"):
        return None
    word, sep, raw_score = text.rpartition(MASTER_SEPARATOR)
    if not sep:
        raise ValueError(f"missing '{MASTER_SEPARATOR}' in {text!r}")
    word = word.strip().upper()
    if not WORD_RE.match(word):
        raise ValueError(f"non-letter characters in {word!r}")
    try:
        score = float(raw_score.strip())
    except ValueError as exc:
        raise ValueError(f"invalid score {raw_score!r}") from exc
    if not math.isfinite(score):
        raise ValueError(f"invalid score {raw_score!r}")
    return word, clamp_score(score)


class WordDictionary:
    """Master word list with constant-time membership and score lookup.

    Words are bucketed by length in source insertion order. Duplicates keep
    their first position and the highest score seen.
    """

    def __init__(self, entries: Optional[Iterable[Tuple[str, int]]] = None, *, source: str = "memory") -> None:
        self.source = source
        self._scores: Dict[str, int] = {}
        self._by_length: Dict[int, List[str]] = {}
        self._fingerprint: Optional[str] = None
        for word, score in entries or ():
            self.add(word, score)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    @classmethod
    def load(cls, config: DictionaryConfig) -> "WordDictionary":
        """Read every configured word list once.

        A missing file logs a warning; only a completely empty result raises
        :class:`DictionaryLoadError`.
        """

        dictionary = cls(source=str(config.path))
        for length in config.lengths:
            path = config.file_for(length)
            if not path.is_file():
                LOGGER.warning("Word list missing: %s", path)
                continue
            loaded, skipped = dictionary._load_word_list(path, length, config.default_score)
            LOGGER.info("Loaded %s words of length %s from %s", loaded, length, path.name)
            if skipped:
                LOGGER.debug("Skipped %s invalid lines in %s", skipped, path.name)

        if not len(dictionary):
            raise DictionaryLoadError(f"No words could be loaded from {config.path}")
        dictionary._log_stats()
        return dictionary

    @classmethod
    def from_master_file(cls, path: Path | str) -> "WordDictionary":
        """Load a ``WORD;SCORE`` master dictionary."""

        source = Path(path)
        if not source.is_file():
            raise DictionaryLoadError(f"Missing master dictionary: {source}")

        dictionary = cls(source=str(source))
        skipped = 0
        with source.open("r", encoding="utf-8") as handle:
            for lineno, line in enumerate(handle, start=1):
                try:
                    parsed = parse_master_line(line)
                except ValueError as exc:
                    skipped += 1
                    LOGGER.debug("%s:%s skipped: %s", source.name, lineno, exc)
                    continue
                if parsed is None:
                    continue
                word, score = parsed
                if len(word) not in SUPPORTED_LENGTHS:
                    skipped += 1
                    continue
                dictionary.add(word, score)

        if not len(dictionary):
            raise DictionaryLoadError(f"No words could be loaded from {source}")
        LOGGER.info("Loaded %s words from %s (%s lines skipped)", len(dictionary), source.name, skipped)
        dictionary._log_stats()
        return dictionary

    @classmethod
    def from_entries(cls, entries: Iterable[Tuple[str, int]]) -> "WordDictionary":
        """Build from ``(word, score)`` pairs, silently dropping invalid ones."""

        dictionary = cls()
        for word, score in entries:
            upper = word.upper() if isinstance(word, str) else ""
            if not WORD_RE.match(upper):
                continue
            dictionary.add(upper, clamp_score(score))
        return dictionary

    def _load_word_list(self, path: Path, length: int, default_score: int) -> Tuple[int, int]:
        loaded = skipped = 0
        with path.open("r", encoding="utf-8") as handle:
            for lineno, line in enumerate(handle, start=1):
                try:
                    parsed = parse_word_line(line, default_score)
                except ValueError as exc:
                    skipped += 1
                    LOGGER.warning("%s:%s ignored: %s", path.name, lineno, exc)
                    continue
                if parsed is None:
                    continue
                word, score = parsed
                if len(word) != length:
                    skipped += 1
                    LOGGER.warning(
                        "%s:%s ignored: %r is not %s letters long", path.name, lineno, word, length
                    )
                    continue
                self.add(word, score)
                loaded += 1
        return loaded, skipped

    def add(self, word: str, score: int) -> None:
        existing = self._scores.get(word)
        if existing is not None:
            if score > existing:
                self._scores[word] = score
                self._fingerprint = None
            return
        self._scores[word] = score
        self._by_length.setdefault(len(word), []).append(word)
        self._fingerprint = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def has(self, word: str) -> bool:
        if not isinstance(word, str):
            return False
        return word.upper() in self._scores

    __contains__ = has

    def score(self, word: str) -> int:
        if not isinstance(word, str):
            return 0
        return self._scores.get(word.upper(), 0)

    def get(self, word: str) -> Optional[WordEntry]:
        if not isinstance(word, str):
            return None
        upper = word.upper()
        score = self._scores.get(upper)
        if score is None:
            return None
        return WordEntry(upper, score)

    def words_of_length(self, length: int) -> Sequence[str]:
        return tuple(self._by_length.get(length, ()))

    def entries_of_length(self, length: int) -> List[Tuple[str, int]]:
        scores = self._scores
        return [(word, scores[word]) for word in self._by_length.get(length, ())]

    def iter_entries(self) -> Iterator[WordEntry]:
        for length in sorted(self._by_length):
            for word in self._by_length[length]:
                yield WordEntry(word, self._scores[word])

    def lengths(self) -> List[int]:
        return sorted(self._by_length)

    def __len__(self) -> int:
        return len(self._scores)

    @property
    def fingerprint(self) -> str:
        """Content hash identifying this dictionary snapshot."""

        if self._fingerprint is None:
            digest = hashlib.sha256()
            for entry in self.iter_entries():
                digest.update(f"{entry.word};{entry.score}\n".encode("ascii"))
            self._fingerprint = digest.hexdigest()[:16]
        return self._fingerprint

    def stats(self) -> Dict[str, object]:
        by_length = {length: len(words) for length, words in sorted(self._by_length.items())}
        scores = list(self._scores.values())
        average = round(sum(scores) / len(scores), 1) if scores else 0.0
        histogram = {label: 0 for label, _, _ in SCORE_BUCKETS}
        for value in scores:
            for label, lo, hi in SCORE_BUCKETS:
                if lo <= value <= hi:
                    histogram[label] += 1
                    break
        return {
            "totalWords": len(scores),
            "byLength": by_length,
            "averageScore": average,
            "scoreBuckets": histogram,
            "source": self.source,
        }

    def _log_stats(self) -> None:
        stats = self.stats()
        LOGGER.info("Dictionary ready: %s words (avg score %s)", stats["totalWords"], stats["averageScore"])
        for length, count in stats["byLength"].items():
            LOGGER.debug("  %s-letter: %s", length, count)
