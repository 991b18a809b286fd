"""Exact CP-SAT fill backend using OR-Tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, List, Mapping, Sequence, Tuple

from ortools.sat.python import cp_model

from ..core.constants import LETTERS
from ..core.models import Coord, Slot
from ..utils.logger import get_logger
from .grid import MiniGrid

LOGGER = get_logger(__name__)

SOLVED = "solved"
INFEASIBLE = "infeasible"
TIMEOUT = "timeout"


@dataclass
class CpSatOutcome:
    status: str
    assignments: List[Tuple[Slot, str]] = field(default_factory=list)
    wall_time: float = 0.0
    branches: int = 0
    conflicts: int = 0


def solve_fill(
    grid: MiniGrid,
    domains: Mapping[str, Sequence[str]],
    *,
    timeout: float,
    seed: int = 0,
) -> CpSatOutcome:
    """Fill every slot listed in ``domains`` at once.

    Args:
        grid: Working grid; letters already present become fixed variables.
        domains: Slot id -> allowed words (already filtered by score,
            exclusions and words used elsewhere in the grid).
        timeout: Solver time limit in seconds.
        seed: CP-SAT random seed; with a single worker the result is
            reproducible.

    Returns:
        A :class:`CpSatOutcome`; ``assignments`` holds ``(slot, word)`` pairs
        in slot order when ``status`` is ``"solved"``.
    """
    slots = [grid.slot(slot_id) for slot_id in domains]
    slots.sort(key=lambda slot: slot.sort_key)
    if not slots:
        return CpSatOutcome(status=SOLVED)
    if any(not domains[slot.id] for slot in slots):
        return CpSatOutcome(status=INFEASIBLE)
    if timeout <= 0:
        return CpSatOutcome(status=TIMEOUT)

    model = cp_model.CpModel()

    # ------------------------------------------------------------------
    # Step 1: Cell letter variables
    # ------------------------------------------------------------------
    cell_vars: Dict[Coord, cp_model.IntVar] = {}
    for slot in slots:
        for r, c in slot.cells:
            if (r, c) in cell_vars:
                continue
            existing = grid.cell(r, c).letter
            if existing:
                value = _letter_value(existing)
                cell_vars[(r, c)] = model.new_int_var(value, value, f"L_{r}_{c}")
            else:
                cell_vars[(r, c)] = model.new_int_var(0, len(LETTERS) - 1, f"L_{r}_{c}")

    # ------------------------------------------------------------------
    # Step 2: Table constraint per slot
    # ------------------------------------------------------------------
    for slot in slots:
        tuples = [[_letter_value(ch) for ch in word] for word in domains[slot.id]]
        model.add_allowed_assignments([cell_vars[cell] for cell in slot.cells], tuples)

    # ------------------------------------------------------------------
    # Step 3: Same-length slots may not hold the same word
    # ------------------------------------------------------------------
    by_length: Dict[int, List[Slot]] = {}
    for slot in slots:
        by_length.setdefault(slot.length, []).append(slot)
    for group in by_length.values():
        for first, second in combinations(group, 2):
            _add_differ_constraint(model, cell_vars, first, second)

    # ------------------------------------------------------------------
    # Step 4: Solve
    # ------------------------------------------------------------------
    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = timeout
    solver.parameters.num_workers = 1
    solver.parameters.random_seed = seed

    LOGGER.debug(
        "CP-SAT: %d slots, %d cell vars, solving (timeout=%0.2fs)",
        len(slots),
        len(cell_vars),
        timeout,
    )
    status = solver.solve(model)
    outcome = CpSatOutcome(
        status=TIMEOUT,
        wall_time=solver.wall_time,
        branches=solver.num_branches,
        conflicts=solver.num_conflicts,
    )
    if status == cp_model.INFEASIBLE:
        outcome.status = INFEASIBLE
        return outcome
    if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
        LOGGER.debug("CP-SAT: stopped without a solution (status=%s)", solver.status_name(status))
        return outcome

    # ------------------------------------------------------------------
    # Step 5: Extract solution
    # ------------------------------------------------------------------
    outcome.status = SOLVED
    for slot in slots:
        word = "".join(LETTERS[solver.value(cell_vars[cell])] for cell in slot.cells)
        outcome.assignments.append((slot, word))
    LOGGER.debug("CP-SAT: solution found in %.3fs", solver.wall_time)
    return outcome


def _letter_value(letter: str) -> int:
    return ord(letter) - ord("A")


def _add_differ_constraint(model: cp_model.CpModel, cell_vars, first: Slot, second: Slot) -> None:
    """Ensure two same-length slots cannot contain identical words."""
    diffs = []
    for pos in range(first.length):
        v1 = cell_vars[first.cells[pos]]
        v2 = cell_vars[second.cells[pos]]
        b = model.new_bool_var(f"d_{first.id}_{second.id}_{pos}")
        model.add(v1 != v2).only_enforce_if(b)
        model.add(v1 == v2).only_enforce_if(~b)
        diffs.append(b)
    model.add_bool_or(diffs)
