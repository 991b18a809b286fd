"""Black-square templates, symmetry and seed-word placement.

Seed words usually come from an external theme generator; this module only
checks them against the dictionary, writes as many as fit into a template,
and hands the seeded grid to the fill solver.
"""

from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Union

from ..core.constants import (
    BLACK_SQUARE,
    EMPTY_CELL,
    GRID_SIZE,
    ORTHOGONAL_STEPS,
    Symmetry,
)
from ..core.exceptions import InvalidGridError
from ..core.models import Coord, Slot
from ..data.dictionary import WordDictionary
from ..data.normalization import clean_word, matches_pattern
from ..utils.logger import get_logger
from .grid import MiniGrid
from .solver import FillOptions, FillResult, FillSolver


LOGGER = get_logger(__name__)

MAX_BLOCKS = 10
FALLBACK_TEMPLATE = "center"

TEMPLATES: Dict[str, FrozenSet[Coord]] = {
    "open": frozenset(),
    "center": frozenset({(2, 2)}),
    "corners": frozenset({(0, 0), (4, 4)}),
    "four-corners": frozenset({(0, 0), (0, 4), (4, 0), (4, 4)}),
    "staircase": frozenset({(0, 0), (0, 1), (4, 3), (4, 4)}),
    "notch": frozenset({(0, 0), (1, 0), (3, 4), (4, 4)}),
}


# ------------------------------------------------------------------
# Templates and symmetry
# ------------------------------------------------------------------
def mirror(coord: Coord, symmetry: Symmetry, size: int = GRID_SIZE) -> Optional[Coord]:
    row, col = coord
    last = size - 1
    if symmetry == Symmetry.ROTATIONAL:
        return (last - row, last - col)
    if symmetry == Symmetry.HORIZONTAL:
        return (last - row, col)
    if symmetry == Symmetry.VERTICAL:
        return (row, last - col)
    if symmetry == Symmetry.DIAGONAL_NW_SE:
        return (col, row)
    if symmetry == Symmetry.DIAGONAL_NE_SW:
        return (last - col, last - row)
    return None


def apply_symmetry(
    blocks: Iterable[Coord],
    symmetry: Union[Symmetry, str] = Symmetry.NONE,
    size: int = GRID_SIZE,
) -> FrozenSet[Coord]:
    """Add the mirror image of every block under ``symmetry``."""

    kind = Symmetry(symmetry)
    result = set(blocks)
    for coord in list(result):
        image = mirror(coord, kind, size)
        if image is not None:
            result.add(image)
    return frozenset(result)


def template_rows(blocks: Iterable[Coord], size: int = GRID_SIZE) -> List[List[str]]:
    rows = [[EMPTY_CELL for _ in range(size)] for _ in range(size)]
    for r, c in blocks:
        rows[r][c] = BLACK_SQUARE
    return rows


def _is_connected(blocks: FrozenSet[Coord], size: int) -> bool:
    open_cells = {(r, c) for r in range(size) for c in range(size)} - blocks
    if not open_cells:
        return False
    start = next(iter(open_cells))
    seen = {start}
    queue = deque([start])
    while queue:
        r, c = queue.popleft()
        for dr, dc in ORTHOGONAL_STEPS:
            nxt = (r + dr, c + dc)
            if nxt in open_cells and nxt not in seen:
                seen.add(nxt)
                queue.append(nxt)
    return len(seen) == len(open_cells)


def is_valid_template(blocks: Iterable[Coord], size: int = GRID_SIZE) -> bool:
    """Few enough blocks, no solid row or column, connected, no single-cell runs."""

    cells = frozenset(blocks)
    if len(cells) > MAX_BLOCKS:
        LOGGER.debug("Template rejected: %s blocks", len(cells))
        return False
    for index in range(size):
        if all((index, c) in cells for c in range(size)) or all((r, index) in cells for r in range(size)):
            LOGGER.debug("Template rejected: solid line at %s", index)
            return False
    if not _is_connected(cells, size):
        LOGGER.debug("Template rejected: open cells are not connected")
        return False
    try:
        MiniGrid.from_rows(template_rows(cells, size), size=size)
    except InvalidGridError as exc:
        LOGGER.debug("Template rejected: %s", exc)
        return False
    return True


# ------------------------------------------------------------------
# Seed words
# ------------------------------------------------------------------
@dataclass
class SeedWord:
    word: str
    in_dictionary: bool
    score: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {"word": self.word, "inDictionary": self.in_dictionary, "score": self.score}


def validate_seed_words(words: Iterable[str], dictionary: WordDictionary) -> List[SeedWord]:
    """Normalize seeds and flag dictionary membership, keeping submission order."""

    checked: List[SeedWord] = []
    seen = set()
    for raw in words:
        word = clean_word(raw)
        if not word or word in seen:
            continue
        seen.add(word)
        entry = dictionary.get(word)
        checked.append(SeedWord(word=word, in_dictionary=entry is not None, score=entry.score if entry else 0))
    return checked


@dataclass
class SeedPlacement:
    word: str
    slot_id: str
    row: int
    col: int
    direction: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "word": self.word,
            "slotId": self.slot_id,
            "row": self.row,
            "col": self.col,
            "direction": self.direction,
        }


@dataclass
class SeedLayout:
    template: str
    rows: List[List[str]]
    placements: List[SeedPlacement] = field(default_factory=list)


@dataclass
class SeedConfig:
    template: Optional[str] = None
    symmetry: Symmetry = Symmetry.NONE
    rng_seed: Optional[int] = None
    attempts: int = 5

    def __post_init__(self) -> None:
        self.symmetry = Symmetry(self.symmetry)
        if self.template is not None and self.template not in TEMPLATES:
            raise ValueError(f"Unknown template {self.template!r}; expected one of {sorted(TEMPLATES)}")
        self.attempts = max(1, int(self.attempts))


class SeedPlacer:
    """Writes seed words into a template, longest slots first."""

    def __init__(self, dictionary: WordDictionary, rng_seed: Optional[int] = None) -> None:
        self.dictionary = dictionary
        self.rng = random.Random(rng_seed if rng_seed is not None else 0)

    def place(
        self,
        seeds: Sequence[str],
        template: Optional[str] = None,
        symmetry: Union[Symmetry, str] = Symmetry.NONE,
    ) -> SeedLayout:
        name = template or self.rng.choice(sorted(TEMPLATES))
        blocks = apply_symmetry(TEMPLATES[name], symmetry)
        if not is_valid_template(blocks):
            LOGGER.debug("Template %s under %s symmetry is unusable; using %s", name, symmetry, FALLBACK_TEMPLATE)
            name = FALLBACK_TEMPLATE
            blocks = TEMPLATES[name]
        grid = MiniGrid.from_rows(template_rows(blocks))

        words = [seed.word for seed in validate_seed_words(seeds, self.dictionary) if seed.in_dictionary]
        self.rng.shuffle(words)
        slots = sorted(grid.slots, key=lambda slot: (-slot.length, slot.sort_key))
        taken = set()
        placements: List[SeedPlacement] = []
        for word in words:
            for slot in slots:
                if slot.id in taken or slot.length != len(word):
                    continue
                if not matches_pattern(word, grid.read_pattern(slot)):
                    continue
                if self._try_place(grid, slot, word, placements):
                    taken.add(slot.id)
                    placements.append(
                        SeedPlacement(
                            word=word,
                            slot_id=slot.id,
                            row=slot.start_row,
                            col=slot.start_col,
                            direction=slot.direction.value.lower(),
                        )
                    )
                    break

        rows = grid.to_rows()
        LOGGER.debug("Seeded template %s with %s/%s words", name, len(placements), len(words))
        return SeedLayout(template=name, rows=rows, placements=placements)

    def _try_place(self, grid: MiniGrid, slot: Slot, word: str, placements: List[SeedPlacement]) -> bool:
        """Keep the placement only if every crossing it completes is a fresh word."""

        used = {placement.word for placement in placements}
        open_crossings = [
            grid.slot(crossing.slot_id)
            for crossing in grid.crossings(slot)
            if not grid.is_complete(grid.slot(crossing.slot_id))
        ]
        with grid.placement(slot, word) as handle:
            for other in open_crossings:
                completed = grid.read_word(other)
                if completed is None:
                    continue
                if completed in used or completed == word or not self.dictionary.has(completed):
                    return False
            handle.commit()
        return True


# ------------------------------------------------------------------
# Themed fill
# ------------------------------------------------------------------
@dataclass
class ThemedFillResult:
    success: bool
    attempts: int
    seeds: List[SeedWord] = field(default_factory=list)
    placements: List[SeedPlacement] = field(default_factory=list)
    template: Optional[str] = None
    fill: Optional[FillResult] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = self.fill.to_dict() if self.fill is not None else {}
        payload.update(
            {
                "success": self.success,
                "attempts": self.attempts,
                "seedWords": [seed.to_dict() for seed in self.seeds],
                "placements": [placement.to_dict() for placement in self.placements],
                "template": self.template,
            }
        )
        if self.message:
            payload["message"] = self.message
        return payload


def themed_fill(
    seeds: Iterable[str],
    options: Union[FillOptions, Mapping[str, object], None] = None,
    *,
    config: Optional[SeedConfig] = None,
    solver: Optional[FillSolver] = None,
) -> ThemedFillResult:
    """Place seeds into a template and fill around them, trying several layouts."""

    opts = FillOptions.coerce(options)
    config = config or SeedConfig(rng_seed=opts.rng_seed)
    solver = solver or FillSolver()
    dictionary = solver.resources.dictionary

    checked = validate_seed_words(seeds, dictionary)
    usable = [
        seed.word
        for seed in checked
        if seed.in_dictionary and seed.score >= opts.min_score and seed.word not in opts.exclude_words
    ]
    if not usable:
        return ThemedFillResult(
            success=False,
            attempts=0,
            seeds=checked,
            message="No usable dictionary words among the seeds",
        )

    base_seed = config.rng_seed if config.rng_seed is not None else 0
    last: Optional[ThemedFillResult] = None
    for attempt in range(1, config.attempts + 1):
        placer = SeedPlacer(dictionary, rng_seed=base_seed * 31 + attempt)
        layout = placer.place(usable, template=config.template, symmetry=config.symmetry)
        if not layout.placements:
            LOGGER.debug("Attempt %s placed no seeds", attempt)
            continue
        result = solver.quick_fill(layout.rows, opts)
        last = ThemedFillResult(
            success=result.success,
            attempts=attempt,
            seeds=checked,
            placements=layout.placements,
            template=layout.template,
            fill=result,
        )
        if result.success:
            LOGGER.info(
                "Themed fill succeeded on attempt %s with %s seed(s) in template %s",
                attempt,
                len(layout.placements),
                layout.template,
            )
            return last
        LOGGER.debug("Themed attempt %s failed: %s", attempt, result.reason)

    if last is None:
        return ThemedFillResult(
            success=False,
            attempts=config.attempts,
            seeds=checked,
            message="No seed word fits any template slot",
        )
    last.attempts = config.attempts
    last.message = "Could not fill the grid around the seed words"
    LOGGER.warning("Themed fill failed after %s attempts", config.attempts)
    return last
