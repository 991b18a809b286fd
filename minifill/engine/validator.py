"""Deterministic soundness checks for completed fills."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set

from ..core.constants import CellState
from ..core.exceptions import ValidationError
from ..core.models import Coord
from ..data.dictionary import WordDictionary
from ..utils.logger import get_logger
from .grid import MiniGrid


LOGGER = get_logger(__name__)


@dataclass
class ValidationResult:
    ok: bool
    messages: List[str] = field(default_factory=list)


class GridValidator:
    """Audits a fill: every slot is an allowed dictionary word, used once,
    and the caller's clue letters are still in place."""

    def __init__(
        self,
        dictionary: WordDictionary,
        *,
        min_score: int = 0,
        excluded: Optional[FrozenSet[str]] = None,
    ) -> None:
        self.dictionary = dictionary
        self.min_score = min_score
        self.excluded = excluded or frozenset()

    def validate(self, grid: MiniGrid, clues: Optional[Dict[Coord, str]] = None) -> ValidationResult:
        try:
            self._check_letters_valid(grid)
            self._check_complete(grid)
            self._check_clues_preserved(grid, clues)
            self._check_no_duplicate_words(grid)
            self._check_words(grid)
        except ValidationError as exc:
            LOGGER.error("Validation failed: %s", exc)
            return ValidationResult(ok=False, messages=[str(exc)])
        return ValidationResult(ok=True)

    def _check_letters_valid(self, grid: MiniGrid) -> None:
        for (r, c), cell in grid.iter_open_cells():
            if cell.state != CellState.LETTER:
                continue
            if not cell.letter or len(cell.letter) != 1 or not ("A" <= cell.letter <= "Z"):
                raise ValidationError(f"Invalid letter {cell.letter!r} at ({r},{c})")

    def _check_complete(self, grid: MiniGrid) -> None:
        for slot in grid.slots:
            if not grid.is_complete(slot):
                raise ValidationError(f"Slot {slot.id} is not filled")

    def _check_clues_preserved(self, grid: MiniGrid, clues: Optional[Dict[Coord, str]]) -> None:
        for (r, c), letter in (clues or {}).items():
            cell = grid.cell(r, c)
            if cell.letter != letter or not cell.fixed:
                raise ValidationError(f"Clue letter {letter} at ({r},{c}) was not preserved")

    def _check_no_duplicate_words(self, grid: MiniGrid) -> None:
        seen: Set[str] = set()
        for slot in grid.slots:
            word = grid.read_word(slot)
            if word is None:
                continue
            if word in seen:
                raise ValidationError(f"Duplicate word '{word}' in {slot.id}")
            seen.add(word)

    def _check_words(self, grid: MiniGrid) -> None:
        for slot in grid.slots:
            word = grid.read_word(slot) or ""
            entry = self.dictionary.get(word)
            if entry is None:
                raise ValidationError(f"Invalid word '{word}' in {slot.id}")
            if entry.score < self.min_score:
                raise ValidationError(
                    f"Word '{word}' in {slot.id} scores {entry.score} (< {self.min_score})"
                )
            if word in self.excluded:
                raise ValidationError(f"Excluded word '{word}' in {slot.id}")
