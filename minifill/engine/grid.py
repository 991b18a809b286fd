"""Grid representation, slot derivation and reversible placement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..core.constants import (
    BLACK_SQUARE,
    EMPTY_CELL,
    GRID_SIZE,
    WILDCARD,
    Bounds,
    CellState,
    Direction,
)
from ..core.exceptions import (
    InternalInvariantViolated,
    InvalidGridError,
    SlotPlacementError,
    UnknownSlotError,
)
from ..core.models import Cell, Coord, Intersection, Slot
from ..data.normalization import WORD_RE
from ..utils.logger import get_logger


LOGGER = get_logger(__name__)

FrozenCell = Tuple[CellState, Optional[str], bool]


@dataclass(frozen=True)
class Crossing:
    """Another slot sharing a cell with the owner slot."""

    slot_id: str
    index: int
    other_index: int


@dataclass(frozen=True)
class PlacementSnapshot:
    slot_id: str
    cells: Tuple[FrozenCell, ...]


class Placement:
    """Scoped placement: leaving the ``with`` block restores the snapshot
    unless :meth:`commit` was called."""

    def __init__(self, grid: "MiniGrid", slot: Slot, word: str) -> None:
        self.grid = grid
        self.slot = slot
        self.word = word
        self.snapshot: Optional[PlacementSnapshot] = None
        self.committed = False

    def __enter__(self) -> "Placement":
        self.snapshot = self.grid.place(self.slot, self.word)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if not self.committed and self.snapshot is not None:
            self.grid.unplace(self.slot, self.snapshot)
        return False

    def commit(self) -> None:
        self.committed = True

    @property
    def written(self) -> List[Coord]:
        """Cells that were empty before this placement."""

        if self.snapshot is None:
            return []
        return [
            coord
            for coord, frozen in zip(self.slot.cells, self.snapshot.cells)
            if frozen[0] == CellState.EMPTY
        ]


class MiniGrid:
    """Board state plus the slots, crossings and intersections derived from it.

    Blocks are immutable once the grid is built; only letters change.
    """

    def __init__(self, cells: List[List[Cell]], size: int = GRID_SIZE) -> None:
        self.size = size
        self.bounds = Bounds(rows=size, cols=size)
        self.cells = cells
        self.slots: List[Slot] = []
        self.intersections: List[Intersection] = []
        self._slot_by_id: Dict[str, Slot] = {}
        self._cell_slots: Dict[Coord, Dict[Direction, str]] = {}
        self._crossings: Dict[str, Tuple[Crossing, ...]] = {}
        self._stack: List[str] = []
        self._derive()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[str]], size: int = GRID_SIZE) -> "MiniGrid":
        """Parse the caller format: ``"A"``..``"Z"``, ``""`` or ``"■"`` per cell."""

        if not isinstance(rows, (list, tuple)) or len(rows) != size:
            raise InvalidGridError(f"Grid must be a {size}x{size} array")
        cells: List[List[Cell]] = []
        for r, row in enumerate(rows):
            if not isinstance(row, (list, tuple)) or len(row) != size:
                raise InvalidGridError(f"Row {r} must contain exactly {size} cells")
            parsed: List[Cell] = []
            for c, value in enumerate(row):
                parsed.append(cls._parse_cell(value, r, c))
            cells.append(parsed)
        return cls(cells, size=size)

    @classmethod
    def empty(cls, size: int = GRID_SIZE) -> "MiniGrid":
        return cls([[Cell.empty() for _ in range(size)] for _ in range(size)], size=size)

    @staticmethod
    def _parse_cell(value: object, row: int, col: int) -> Cell:
        if not isinstance(value, str):
            raise InvalidGridError(f"Cell ({row},{col}) has non-string value {value!r}")
        if value == EMPTY_CELL:
            return Cell.empty()
        if value == BLACK_SQUARE:
            return Cell.block()
        if len(value) == 1 and WORD_RE.match(value):
            return Cell.clue(value)
        raise InvalidGridError(f"Cell ({row},{col}) has invalid value {value!r}")

    # ------------------------------------------------------------------
    # Slot derivation
    # ------------------------------------------------------------------
    def _is_open(self, row: int, col: int) -> bool:
        return self.bounds.contains(row, col) and self.cells[row][col].is_open()

    def _run_length(self, row: int, col: int, direction: Direction) -> int:
        dr, dc = direction.step
        length = 0
        while self._is_open(row, col):
            length += 1
            row += dr
            col += dc
        return length

    def _starts_run(self, row: int, col: int, direction: Direction) -> bool:
        dr, dc = direction.step
        return self._is_open(row, col) and not self._is_open(row - dr, col - dc)

    def _derive(self) -> None:
        starts: List[Tuple[Coord, Direction, int]] = []
        for direction in (Direction.ACROSS, Direction.DOWN):
            for r in range(self.size):
                for c in range(self.size):
                    if not self._starts_run(r, c, direction):
                        continue
                    length = self._run_length(r, c, direction)
                    if length < 2:
                        raise InvalidGridError(
                            f"Cell ({r},{c}) forms a single-cell {direction.value.lower()} run"
                        )
                    starts.append(((r, c), direction, length))

        if not starts:
            raise InvalidGridError("Grid has no open cells")

        numbers: Dict[Coord, int] = {}
        for r in range(self.size):
            for c in range(self.size):
                if any(coord == (r, c) for coord, _, _ in starts):
                    numbers[(r, c)] = len(numbers) + 1

        for (r, c), direction, length in starts:
            number = numbers[(r, c)]
            dr, dc = direction.step
            slot = Slot(
                id=f"{number}{direction.suffix}",
                number=number,
                direction=direction,
                start_row=r,
                start_col=c,
                length=length,
                cells=tuple((r + dr * i, c + dc * i) for i in range(length)),
            )
            self.slots.append(slot)
        self.slots.sort(key=lambda slot: slot.sort_key)

        for slot in self.slots:
            self._slot_by_id[slot.id] = slot
            for coord in slot.cells:
                self._cell_slots.setdefault(coord, {})[slot.direction] = slot.id

        crossings: Dict[str, List[Crossing]] = {slot.id: [] for slot in self.slots}
        for r in range(self.size):
            for c in range(self.size):
                owners = self._cell_slots.get((r, c))
                if not owners or len(owners) < 2:
                    continue
                across = self._slot_by_id[owners[Direction.ACROSS]]
                down = self._slot_by_id[owners[Direction.DOWN]]
                i = across.index_of((r, c))
                j = down.index_of((r, c))
                self.intersections.append(Intersection(across.id, down.id, i, j, (r, c)))
                crossings[across.id].append(Crossing(down.id, i, j))
                crossings[down.id].append(Crossing(across.id, j, i))
        self._crossings = {slot_id: tuple(items) for slot_id, items in crossings.items()}
        LOGGER.debug(
            "Derived %s slots and %s intersections", len(self.slots), len(self.intersections)
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def cell(self, row: int, col: int) -> Cell:
        return self.cells[row][col]

    def slot(self, slot_id: str) -> Slot:
        try:
            return self._slot_by_id[slot_id]
        except KeyError:
            raise UnknownSlotError(slot_id) from None

    def slots_at(self, row: int, col: int) -> Dict[Direction, Slot]:
        owners = self._cell_slots.get((row, col), {})
        return {direction: self._slot_by_id[slot_id] for direction, slot_id in owners.items()}

    def crossings(self, slot: Slot) -> Tuple[Crossing, ...]:
        return self._crossings[slot.id]

    def read_pattern(self, slot: Slot) -> str:
        out = []
        for r, c in slot.cells:
            cell = self.cells[r][c]
            out.append(cell.letter if cell.state == CellState.LETTER else WILDCARD)
        return "".join(out)

    def read_word(self, slot: Slot) -> Optional[str]:
        pattern = self.read_pattern(slot)
        return None if WILDCARD in pattern else pattern

    def is_complete(self, slot: Slot) -> bool:
        return all(self.cells[r][c].state == CellState.LETTER for r, c in slot.cells)

    def unfilled_slots(self) -> List[Slot]:
        return [slot for slot in self.slots if not self.is_complete(slot)]

    def iter_open_cells(self) -> Iterator[Tuple[Coord, Cell]]:
        for r in range(self.size):
            for c in range(self.size):
                cell = self.cells[r][c]
                if cell.is_open():
                    yield (r, c), cell

    def clue_cells(self) -> Dict[Coord, str]:
        return {coord: cell.letter for coord, cell in self.iter_open_cells() if cell.fixed}

    @property
    def open_count(self) -> int:
        return sum(1 for _ in self.iter_open_cells())

    @property
    def filled_count(self) -> int:
        return sum(1 for _, cell in self.iter_open_cells() if cell.state == CellState.LETTER)

    @property
    def filled_ratio(self) -> float:
        total = self.open_count
        return (self.filled_count / total) if total else 0.0

    def block_count(self) -> int:
        return self.size * self.size - self.open_count

    def state_key(self) -> Tuple[FrozenCell, ...]:
        return tuple(cell.freeze() for row in self.cells for cell in row)

    def to_rows(self) -> List[List[str]]:
        return [[cell.symbol() for cell in row] for row in self.cells]

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------
    def place(self, slot: Slot, word: str) -> PlacementSnapshot:
        """Write ``word`` into ``slot`` and return the undo snapshot."""

        text = word.upper()
        if len(text) != slot.length:
            raise SlotPlacementError(f"{text!r} does not fit {slot.id} (length {slot.length})")
        if not WORD_RE.match(text):
            raise SlotPlacementError(f"{word!r} contains non-letters")

        frozen: List[FrozenCell] = []
        for index, (r, c) in enumerate(slot.cells):
            cell = self.cells[r][c]
            if cell.state == CellState.LETTER and cell.letter != text[index]:
                raise SlotPlacementError(
                    f"Letter conflict in {slot.id} at ({r},{c}): {cell.letter} vs {text[index]}"
                )
            frozen.append(cell.freeze())

        for index, (r, c) in enumerate(slot.cells):
            cell = self.cells[r][c]
            if cell.state == CellState.EMPTY:
                cell.state = CellState.LETTER
                cell.letter = text[index]
                cell.fixed = False

        self._stack.append(slot.id)
        return PlacementSnapshot(slot_id=slot.id, cells=tuple(frozen))

    def unplace(self, slot: Slot, snapshot: PlacementSnapshot) -> None:
        """Restore the cells captured by the most recent ``place`` on ``slot``."""

        if snapshot.slot_id != slot.id:
            raise InternalInvariantViolated(
                f"Snapshot for {snapshot.slot_id} applied to {slot.id}"
            )
        if not self._stack or self._stack[-1] != slot.id:
            raise InternalInvariantViolated(
                f"Out-of-order unplace of {slot.id}; most recent placement is "
                f"{self._stack[-1] if self._stack else None}"
            )
        for (r, c), (state, letter, fixed) in zip(slot.cells, snapshot.cells):
            cell = self.cells[r][c]
            if cell.fixed and (not fixed or cell.letter != letter):
                raise InternalInvariantViolated(f"Clue cell ({r},{c}) was rewritten")
            cell.state = state
            cell.letter = letter
            cell.fixed = fixed
        self._stack.pop()

    def placement(self, slot: Slot, word: str) -> Placement:
        return Placement(self, slot, word)
