"""Shared constants and enumerations for the mini fill engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


GRID_SIZE = 5
MIN_WORD_LENGTH = 2
MAX_WORD_LENGTH = GRID_SIZE
SUPPORTED_LENGTHS: Tuple[int, ...] = tuple(range(MIN_WORD_LENGTH, MAX_WORD_LENGTH + 1))

BLACK_SQUARE = "■"
EMPTY_CELL = ""
WILDCARD = "."

MIN_SCORE = 0
MAX_SCORE = 100
DEFAULT_WORD_SCORE = 50

DEFAULT_MIN_SCORE = 25
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_MAX_ATTEMPTS = 100
DEFAULT_CANDIDATE_LIMIT = 50
DEFAULT_PATTERN_CACHE_SIZE = 50_000

LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


class CellState(str, Enum):
    """All supported cell states in the grid."""

    EMPTY = "EMPTY"
    LETTER = "LETTER"
    BLOCK = "BLOCK"


class Direction(str, Enum):
    """Word directions supported by the grid."""

    ACROSS = "ACROSS"
    DOWN = "DOWN"

    @property
    def suffix(self) -> str:
        return "A" if self is Direction.ACROSS else "D"

    @property
    def step(self) -> Tuple[int, int]:
        return (0, 1) if self is Direction.ACROSS else (1, 0)

    def crossing(self) -> "Direction":
        return Direction.DOWN if self is Direction.ACROSS else Direction.ACROSS


class FailureReason(str, Enum):
    """Stable reason codes reported by failed fills."""

    TIMEOUT = "timeout"
    NO_SOLUTION = "noSolution"
    INVALID_GRID = "invalidGrid"


class FillEngine(str, Enum):
    """Search backends available to ``quick_fill``."""

    BACKTRACKING = "backtracking"
    CP_SAT = "cp_sat"


class SlotState(str, Enum):
    """Per-slot lifecycle during a search."""

    UNSELECTED = "unselected"
    SELECTED_TRYING = "selected-trying"
    PLACED = "placed"
    ABANDONED = "abandoned"


class Symmetry(str, Enum):
    """Black-square symmetries understood by the seeding helpers."""

    NONE = "none"
    ROTATIONAL = "rotational"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    DIAGONAL_NW_SE = "diagonal-nw-se"
    DIAGONAL_NE_SW = "diagonal-ne-sw"


ORTHOGONAL_STEPS: Tuple[Tuple[int, int], ...] = ((0, 1), (1, 0), (0, -1), (-1, 0))


@dataclass(frozen=True)
class Bounds:
    """Simple rectangle bounds helper."""

    rows: int
    cols: int

    def contains(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols
