"""Merge scored word lists into a single ``WORD;SCORE`` master dictionary."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

from ..core.constants import SUPPORTED_LENGTHS
from ..utils.logger import get_logger
from .dictionary import (
    MASTER_SEPARATOR,
    WORD_LIST_TEMPLATE,
    WordDictionary,
    parse_master_line,
    parse_word_line,
)


LOGGER = get_logger(__name__)


def read_source(path: Path | str) -> Dict[str, int]:
    """Read either format; within one file the higher score wins."""

    location = Path(path)
    words: Dict[str, int] = {}
    with location.open("r", encoding="utf-8") as handle:
        for line in handle:
            parser = parse_master_line if MASTER_SEPARATOR in line else parse_word_line
            try:
                parsed = parser(line)
            except ValueError:
                continue
            if parsed is None:
                continue
            word, score = parsed
            if len(word) not in SUPPORTED_LENGTHS:
                continue
            if score > words.get(word, -1):
                words[word] = score
    return words


def merge_word_lists(sources: Iterable[Path | str]) -> Dict[str, int]:
    """Highest score wins across every source, in source order."""

    master: Dict[str, int] = {}
    for source in sources:
        location = Path(source)
        if not location.is_file():
            LOGGER.warning("Source list missing: %s", location)
            continue
        words = read_source(location)
        added = upgraded = 0
        for word, score in words.items():
            existing = master.get(word)
            if existing is None:
                master[word] = score
                added += 1
            elif score > existing:
                master[word] = score
                upgraded += 1
        LOGGER.info("%s: %s words (%s new, %s upgraded)", location.name, len(words), added, upgraded)
    return master


def sorted_entries(words: Dict[str, int]) -> List[Tuple[str, int]]:
    return sorted(words.items(), key=lambda item: (len(item[0]), item[0]))


def write_master_file(entries: Iterable[Tuple[str, int]], destination: Path | str) -> int:
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8", newline="\n") as handle:
        handle.write("# Crossword master dictionary\n")
        handle.write(f"# Generated {datetime.now(timezone.utc).date().isoformat()}\n")
        handle.write("# Merge strategy: highest score wins across all sources\n")
        for word, score in entries:
            handle.write(f"{word}{MASTER_SEPARATOR}{score}\n")
            count += 1
    return count


def write_word_lists(dictionary: WordDictionary, directory: Path | str, lengths: Sequence[int] = SUPPORTED_LENGTHS) -> List[Path]:
    """Split a dictionary back into the per-length ``N_letter_words.txt`` files."""

    root = Path(directory)
    root.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for length in lengths:
        path = root / WORD_LIST_TEMPLATE.format(length=length)
        with path.open("w", encoding="utf-8", newline="\n") as handle:
            for word, score in dictionary.entries_of_length(length):
                handle.write(f"{word} {score}\n")
        written.append(path)
    return written


__all__ = [
    "merge_word_lists",
    "read_source",
    "sorted_entries",
    "write_master_file",
    "write_word_lists",
]


def _cli() -> None:
    parser = argparse.ArgumentParser(description="Build the crossword master dictionary")
    parser.add_argument("sources", nargs="+", type=Path, help="Word lists to merge, in priority order")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("local_db/crossword-master.dict"),
        help="Destination for the WORD;SCORE master file",
    )
    parser.add_argument(
        "--split-dir",
        type=Path,
        default=None,
        help="Also write N_letter_words.txt lists into this directory",
    )
    args = parser.parse_args()

    merged = merge_word_lists(args.sources)
    entries = sorted_entries(merged)
    count = write_master_file(entries, args.output)
    print(f"Wrote {count:,} words -> {args.output}")
    if args.split_dir is not None:
        paths = write_word_lists(WordDictionary(entries), args.split_dir)
        print(f"Wrote {len(paths)} word lists -> {args.split_dir}")


if __name__ == "__main__":  # pragma: no cover - convenience CLI
    _cli()
