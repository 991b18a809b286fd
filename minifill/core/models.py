"""Data models supporting the fill engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .constants import BLACK_SQUARE, EMPTY_CELL, CellState, Direction


Coord = Tuple[int, int]


@dataclass
class Cell:
    """A grid position: empty, a letter, or a block.

    Letters carry their origin: ``fixed`` cells were supplied by the caller
    and are never rewritten, the rest were placed by the solver.
    """

    state: CellState = CellState.EMPTY
    letter: Optional[str] = None
    fixed: bool = False

    @classmethod
    def empty(cls) -> "Cell":
        return cls()

    @classmethod
    def block(cls) -> "Cell":
        return cls(state=CellState.BLOCK)

    @classmethod
    def clue(cls, letter: str) -> "Cell":
        return cls(state=CellState.LETTER, letter=letter, fixed=True)

    def is_open(self) -> bool:
        return self.state != CellState.BLOCK

    def symbol(self) -> str:
        """Return the cell in the caller-facing grid format."""
        if self.state == CellState.BLOCK:
            return BLACK_SQUARE
        if self.state == CellState.LETTER:
            return self.letter or EMPTY_CELL
        return EMPTY_CELL

    def freeze(self) -> Tuple[CellState, Optional[str], bool]:
        return (self.state, self.letter, self.fixed)


@dataclass(frozen=True)
class Slot:
    """A maximal run of open cells in one direction."""

    id: str
    number: int
    direction: Direction
    start_row: int
    start_col: int
    length: int
    cells: Tuple[Coord, ...] = field(repr=False)

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (self.number, 0 if self.direction == Direction.ACROSS else 1)

    def index_of(self, coord: Coord) -> int:
        return self.cells.index(coord)

    def to_dict(self, pattern: Optional[str] = None) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "id": self.id,
            "number": self.number,
            "direction": self.direction.value.lower(),
            "row": self.start_row,
            "col": self.start_col,
            "length": self.length,
        }
        if pattern is not None:
            payload["pattern"] = pattern
        return payload


@dataclass(frozen=True)
class Intersection:
    """The i-th cell of ``across_id`` is the j-th cell of ``down_id``."""

    across_id: str
    down_id: str
    across_index: int
    down_index: int
    cell: Coord


@dataclass
class Candidate:
    """A word proposed for a slot, annotated for interactive editors."""

    word: str
    score: int
    viable: bool
    residual_domains: Dict[str, int] = field(default_factory=dict)
    composite_score: float = 0.0
    grid_score: Optional[float] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "word": self.word,
            "score": self.score,
            "viable": self.viable,
            "compositeScore": self.composite_score,
            "crossingDomains": dict(self.residual_domains),
        }
        if self.grid_score is not None:
            payload["gridScore"] = self.grid_score
        return payload
