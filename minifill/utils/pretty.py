"""Pretty-print helpers for mini grids and fill results."""

from __future__ import annotations

import sys
from collections import Counter
from typing import TYPE_CHECKING, List, Optional, Sequence

from ..core.constants import BLACK_SQUARE, EMPTY_CELL

if TYPE_CHECKING:
    from ..data.dictionary import WordDictionary
    from ..data.pattern_cache import CacheStats
    from ..engine.solver import CandidateList, EvaluationResult, FillResult


SYMBOLS = {
    BLACK_SQUARE: "#",
    EMPTY_CELL: ".",
}


def cell_symbol(value: str) -> str:
    return SYMBOLS.get(value, value)


def format_grid(rows: Sequence[Sequence[str]]) -> str:
    width = len(rows[0]) if rows else 0
    header_cells = [f"{c:>2}" for c in range(width)]
    lines = ["    " + " ".join(header_cells)]
    lines.append("    " + "-" * (3 * width - 1))
    for r, row in enumerate(rows):
        row_render = " ".join(f"{cell_symbol(value):>2}" for value in row)
        lines.append(f"{r:>2} | {row_render}")
    return "\n".join(lines)


def print_fill_stats(
    result: FillResult,
    dictionary: Optional[WordDictionary] = None,
    *,
    cache: Optional[CacheStats] = None,
    stream=None,
) -> None:
    """Print the solution and search statistics for one fill.

    ``cache`` is an optional snapshot of the shared pattern cache.
    """

    stream = stream or sys.stdout
    stats = result.stats
    if not result.success:
        print(f"Fill failed: {result.reason.value if result.reason else 'unknown'}", file=stream)
        if result.message:
            print(f"  {result.message}", file=stream)
        print(f"  Elapsed:       {result.elapsed_ms:.1f} ms", file=stream)
        print(f"  Slots filled:  {stats.slots_filled}/{stats.slots_total}", file=stream)
        return

    print(format_grid(result.solution or []), file=stream)

    # --- Words ---
    lengths = Counter(len(word) for _, word in result.words)
    print(file=stream)
    print("--- Words ---", file=stream)
    for slot_id, word in result.words:
        score = f" ({dictionary.score(word)})" if dictionary is not None else ""
        print(f"  {slot_id:>4}  {word}{score}", file=stream)
    dist_parts = [f"{length}:{count}" for length, count in sorted(lengths.items())]
    print(f"  Distribution:  {' '.join(dist_parts)}", file=stream)
    print(f"  Avg score:     {result.average_word_score}", file=stream)
    print(f"  Quality:       {result.quality_score}", file=stream)

    # --- Search ---
    print(file=stream)
    print("--- Search ---", file=stream)
    print(f"  Engine:        {stats.engine}", file=stream)
    print(f"  Elapsed:       {result.elapsed_ms:.1f} ms", file=stream)
    print(f"  Attempts:      {stats.attempts}", file=stream)
    print(f"  Backtracks:    {stats.backtracks}", file=stream)
    print(f"  Placements:    {stats.placements}", file=stream)
    if cache is not None:
        print(
            f"  Pattern cache: {cache.hits} hits, {cache.misses} misses ({cache.hit_rate:.2f}%)",
            file=stream,
        )


def format_candidates(listing: CandidateList, *, limit: int = 20) -> str:
    slot = listing.slot
    lines: List[str] = [
        f"{slot['id']} ({slot['length']} letters, pattern {slot.get('pattern', '')}): "
        f"{listing.total_candidates} candidates"
    ]
    for candidate in listing.candidates[:limit]:
        flag = " " if candidate.viable else "x"
        extra = f"  grid={candidate.grid_score}" if candidate.grid_score is not None else ""
        lines.append(
            f"  {flag} {candidate.word:<6} score={candidate.score:>3}  "
            f"composite={candidate.composite_score:>6}{extra}"
        )
    return "\n".join(lines)


def format_evaluation(evaluation: EvaluationResult) -> str:
    lines = [
        f"Quality:       {evaluation.quality}",
        f"Filled slots:  {evaluation.filled_slots}/{evaluation.total_slots}",
        f"Filled cells:  {evaluation.filled_cells}/{evaluation.open_cells}",
    ]
    if evaluation.invalid_words:
        lines.append(f"Not in dictionary: {', '.join(evaluation.invalid_words)}")
    if evaluation.low_score_words:
        lines.append(f"Below min score:   {', '.join(evaluation.low_score_words)}")
    return "\n".join(lines)
