"""Backtracking fill solver and the interactive slot queries.

The search is a classic CSP loop: pick the unfilled slot with the fewest
live candidates (MRV), order its candidates by score and by how much room
they leave the crossing slots, forward-check each placement, and recurse.
Every placement runs inside a scoped handle so timeouts and budget
exhaustion unwind the working grid without bookkeeping at the call sites.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field, fields
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence, Set, Tuple, Union

from ..core.constants import (
    DEFAULT_CANDIDATE_LIMIT,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MIN_SCORE,
    DEFAULT_TIMEOUT_MS,
    MAX_SCORE,
    MIN_SCORE,
    WILDCARD,
    FailureReason,
    FillEngine,
    SlotState,
)
from ..core.exceptions import InternalInvariantViolated, InvalidGridError
from ..core.models import Candidate, Slot
from ..data.normalization import matches_pattern, normalize_exclusions
from ..data.resources import EngineResources, get_resources
from ..data.trie import Match
from ..utils.logger import get_logger
from . import cpsat
from .grid import Crossing, MiniGrid
from .validator import GridValidator


LOGGER = get_logger(__name__)

DEFAULT_ATTEMPT_BACKTRACK_LIMIT = 2000

GridRows = Sequence[Sequence[str]]


# ----------------------------------------------------------------------
# Options and results
# ----------------------------------------------------------------------
@dataclass
class FillOptions:
    min_score: int = DEFAULT_MIN_SCORE
    exclude_words: FrozenSet[str] = frozenset()
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    rng_seed: Optional[int] = None
    engine: FillEngine = FillEngine.BACKTRACKING
    attempt_backtrack_limit: Optional[int] = DEFAULT_ATTEMPT_BACKTRACK_LIMIT
    limit: int = DEFAULT_CANDIDATE_LIMIT
    compute_grid_score: bool = False

    _ALIASES = {
        "minScore": "min_score",
        "excludeWords": "exclude_words",
        "timeoutMs": "timeout_ms",
        "maxAttempts": "max_attempts",
        "rngSeed": "rng_seed",
        "attemptBacktrackLimit": "attempt_backtrack_limit",
        "computeGridScore": "compute_grid_score",
    }

    def __post_init__(self) -> None:
        self.min_score = max(MIN_SCORE, min(MAX_SCORE, int(self.min_score)))
        self.exclude_words = normalize_exclusions(self.exclude_words)
        self.timeout_ms = max(0, int(self.timeout_ms))
        self.max_attempts = max(1, int(self.max_attempts))
        self.engine = FillEngine(self.engine)
        self.limit = max(0, int(self.limit))
        if self.attempt_backtrack_limit is not None:
            self.attempt_backtrack_limit = max(1, int(self.attempt_backtrack_limit))

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, object]]) -> "FillOptions":
        """Build options from a request body; camelCase and snake_case keys both work."""

        known = {item.name for item in fields(cls)}
        kwargs: Dict[str, object] = {}
        for key, value in (payload or {}).items():
            name = cls._ALIASES.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def coerce(cls, options: Union["FillOptions", Mapping[str, object], None]) -> "FillOptions":
        if isinstance(options, FillOptions):
            return options
        return cls.from_mapping(options)

    @property
    def seed(self) -> int:
        return self.rng_seed if self.rng_seed is not None else 0


@dataclass
class PuzzleStructure:
    """Layout quality: favours longer entries and few blocks."""

    two_letter_words: int = 0
    three_letter_words: int = 0
    four_plus_words: int = 0
    block_count: int = 0
    total_words: int = 0

    @classmethod
    def from_grid(cls, grid: MiniGrid) -> "PuzzleStructure":
        lengths = [slot.length for slot in grid.slots]
        return cls(
            two_letter_words=sum(1 for n in lengths if n == 2),
            three_letter_words=sum(1 for n in lengths if n == 3),
            four_plus_words=sum(1 for n in lengths if n >= 4),
            block_count=grid.block_count(),
            total_words=len(lengths),
        )

    @property
    def score(self) -> int:
        score = 100
        score -= self.two_letter_words * 30
        score += self.three_letter_words * 10
        score += self.four_plus_words * 20
        if self.block_count > 6:
            score -= (self.block_count - 6) * 10
        score += self.total_words * 5
        return score

    def to_dict(self) -> Dict[str, int]:
        return {
            "score": self.score,
            "twoLetterWords": self.two_letter_words,
            "threeLetterWords": self.three_letter_words,
            "fourPlusWords": self.four_plus_words,
            "blackCount": self.block_count,
            "totalWords": self.total_words,
        }


@dataclass
class SearchStats:
    engine: str = FillEngine.BACKTRACKING.value
    attempts: int = 0
    backtracks: int = 0
    placements: int = 0
    abandoned: int = 0
    slots_total: int = 0
    slots_filled: int = 0
    elapsed_ms: float = 0.0
    slot_states: Dict[str, str] = field(default_factory=dict)
    structure: Optional[PuzzleStructure] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "engine": self.engine,
            "attempts": self.attempts,
            "backtracks": self.backtracks,
            "placements": self.placements,
            "abandoned": self.abandoned,
            "slotsTotal": self.slots_total,
            "slotsFilled": self.slots_filled,
            "elapsedMs": self.elapsed_ms,
            "slotStates": dict(self.slot_states),
        }
        if self.structure is not None:
            payload["structure"] = self.structure.to_dict()
        return payload


@dataclass
class FillResult:
    success: bool
    elapsed_ms: float
    reason: Optional[FailureReason] = None
    message: Optional[str] = None
    solution: Optional[List[List[str]]] = None
    words: List[Tuple[str, str]] = field(default_factory=list)
    quality_score: Optional[float] = None
    average_word_score: Optional[float] = None
    stats: SearchStats = field(default_factory=SearchStats)

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"success": self.success, "elapsedMs": self.elapsed_ms}
        if self.success:
            payload.update(
                {
                    "solution": self.solution,
                    "words": [{"slotId": slot_id, "word": word} for slot_id, word in self.words],
                    "qualityScore": self.quality_score,
                    "averageWordScore": self.average_word_score,
                }
            )
        else:
            payload["reason"] = self.reason.value if self.reason else None
            if self.message:
                payload["message"] = self.message
        payload["stats"] = self.stats.to_dict()
        return payload


@dataclass
class CandidateList:
    slot: Dict[str, object]
    candidates: List[Candidate]
    total_candidates: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "slot": dict(self.slot),
            "candidates": [candidate.to_dict() for candidate in self.candidates],
            "totalCandidates": self.total_candidates,
        }


@dataclass
class BestLocation:
    slot: Dict[str, object]
    domain_size: int
    reason: str

    def to_dict(self) -> Dict[str, object]:
        return {"slot": dict(self.slot), "domainSize": self.domain_size, "reason": self.reason}


@dataclass
class EvaluationResult:
    quality: float
    complete: bool
    filled_slots: int
    total_slots: int
    filled_cells: int
    open_cells: int
    words: List[Tuple[str, str, int]] = field(default_factory=list)
    invalid_words: List[str] = field(default_factory=list)
    low_score_words: List[str] = field(default_factory=list)
    structure: Optional[PuzzleStructure] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "quality": self.quality,
            "complete": self.complete,
            "filledSlots": self.filled_slots,
            "totalSlots": self.total_slots,
            "filledCells": self.filled_cells,
            "openCells": self.open_cells,
            "words": [
                {"slotId": slot_id, "word": word, "score": score}
                for slot_id, word, score in self.words
            ],
            "invalidWords": list(self.invalid_words),
            "lowScoreWords": list(self.low_score_words),
        }
        if self.structure is not None:
            payload["structure"] = self.structure.to_dict()
        return payload


# ----------------------------------------------------------------------
# Search internals
# ----------------------------------------------------------------------
def attempt_budget(limit: Optional[int], attempt: int, max_attempts: int) -> Optional[int]:
    """Backtrack budget for one restart: doubles each attempt, the last is unbounded."""

    if limit is None or attempt >= max_attempts:
        return None
    return limit * 2 ** (attempt - 1)


class _SearchTimeout(Exception):
    pass


class _BudgetExhausted(Exception):
    pass


@dataclass
class _Probe:
    """Effect of tentatively writing one word into a slot."""

    viable: bool
    residual: Dict[str, int]
    completed: Tuple[str, ...] = ()

    @property
    def residual_sum(self) -> int:
        return sum(self.residual.values())

    @property
    def residual_mean(self) -> float:
        return (self.residual_sum / len(self.residual)) if self.residual else 0.0


class _Lexicon:
    """Pattern lookups filtered by minimum score and exclusions.

    Filtered results are memoized for the lifetime of one request; the
    unfiltered results come from the shared pattern cache.
    """

    def __init__(self, resources: EngineResources, options: FillOptions) -> None:
        self.resources = resources
        self.min_score = options.min_score
        self.excluded = options.exclude_words
        self._memo: Dict[Tuple[int, str], Tuple[Match, ...]] = {}

    def accepts(self, word: str) -> bool:
        entry = self.resources.dictionary.get(word)
        return entry is not None and entry.score >= self.min_score and entry.word not in self.excluded

    def matches(self, length: int, pattern: str) -> Tuple[Match, ...]:
        key = (length, pattern)
        cached = self._memo.get(key)
        if cached is None:
            cached = tuple(
                (word, score)
                for word, score in self.resources.cache.lookup(length, pattern)
                if score >= self.min_score and word not in self.excluded
            )
            self._memo[key] = cached
        return cached

    def domain(self, length: int, pattern: str, used: Set[str]) -> List[Match]:
        return [(word, score) for word, score in self.matches(length, pattern) if word not in used]

    def domain_size(self, length: int, pattern: str, used: Set[str], extra: Optional[str] = None) -> int:
        size = len(self.matches(length, pattern))
        for word in used:
            if len(word) == length and matches_pattern(word, pattern) and self.accepts(word):
                size -= 1
        if extra is not None and extra not in used and len(extra) == length and matches_pattern(extra, pattern):
            size -= 1
        return size


class _Workspace:
    """A working grid plus the set of words already committed to it."""

    def __init__(self, grid: MiniGrid, lexicon: _Lexicon) -> None:
        self.grid = grid
        self.lexicon = lexicon
        self.used: Set[str] = set()

    def preload(self) -> Optional[str]:
        """Register every already-complete slot; return a problem description if any."""

        for slot in self.grid.slots:
            word = self.grid.read_word(slot)
            if word is None:
                continue
            if not self.lexicon.accepts(word):
                return f"{slot.id} reads {word}, which is not an allowed word"
            if word in self.used:
                return f"{slot.id} repeats {word}"
            self.used.add(word)
        return None

    def select(self, check: Optional[Callable[[], None]] = None) -> Optional[Tuple[Slot, int]]:
        """Most constrained unfilled slot; ties go to the longer slot, then slot order.

        ``check`` runs before each domain count and may raise to abort.
        """

        best: Optional[Tuple[Tuple[int, int], Slot, int]] = None
        for slot in self.grid.slots:
            if self.grid.is_complete(slot):
                continue
            if check is not None:
                check()
            size = self.lexicon.domain_size(slot.length, self.grid.read_pattern(slot), self.used)
            key = (size, -slot.length)
            if best is None or key < best[0]:
                best = (key, slot, size)
        if best is None:
            return None
        return best[1], best[2]

    def probe(self, slot: Slot, word: str) -> _Probe:
        """Forward-check ``word`` in ``slot`` against every unfilled crossing."""

        residual: Dict[str, int] = {}
        completed: List[str] = []
        viable = True
        for crossing in self.grid.crossings(slot):
            other = self.grid.slot(crossing.slot_id)
            pattern = self.grid.read_pattern(other)
            if WILDCARD not in pattern:
                continue
            projected = self._project(pattern, crossing, word)
            if WILDCARD not in projected:
                ok = (
                    projected != word
                    and projected not in self.used
                    and projected not in completed
                    and self.lexicon.accepts(projected)
                )
                residual[other.id] = 1 if ok else 0
                if ok:
                    completed.append(projected)
                else:
                    viable = False
                continue
            size = self.lexicon.domain_size(other.length, projected, self.used, extra=word)
            residual[other.id] = size
            if size == 0:
                viable = False
        return _Probe(viable=viable, residual=residual, completed=tuple(completed))

    @staticmethod
    def _project(pattern: str, crossing: Crossing, word: str) -> str:
        letters = list(pattern)
        letters[crossing.other_index] = word[crossing.index]
        return "".join(letters)

    def filled_slots(self) -> int:
        return sum(1 for slot in self.grid.slots if self.grid.is_complete(slot))


class _Search:
    """One backtracking attempt over a workspace."""

    def __init__(
        self,
        workspace: _Workspace,
        rng: random.Random,
        deadline: float,
        budget: Optional[int],
        stats: SearchStats,
    ) -> None:
        self.ws = workspace
        self.grid = workspace.grid
        self.rng = rng
        self.deadline = deadline
        self.budget = budget
        self.stats = stats
        self.backtracks = 0
        self.states: Dict[str, SlotState] = {
            slot.id: SlotState.PLACED if self.grid.is_complete(slot) else SlotState.UNSELECTED
            for slot in self.grid.slots
        }

    def _check_deadline(self) -> None:
        if time.monotonic() >= self.deadline:
            raise _SearchTimeout()

    def _transition(self, slot_id: str, state: SlotState) -> None:
        LOGGER.debug("%s: %s -> %s", slot_id, self.states[slot_id].value, state.value)
        self.states[slot_id] = state

    def _order(self, slot: Slot) -> List[Tuple[str, int, _Probe]]:
        pattern = self.grid.read_pattern(slot)
        ranked = []
        for word, score in self.ws.lexicon.domain(slot.length, pattern, self.ws.used):
            self._check_deadline()
            jitter = self.rng.random()
            probe = self.ws.probe(slot, word)
            if not probe.viable:
                continue
            ranked.append((-score, -probe.residual_sum, jitter, word, score, probe))
        ranked.sort(key=lambda item: item[:3])
        return [(word, score, probe) for _, _, _, word, score, probe in ranked]

    def _reset_abandoned(self) -> None:
        for slot_id, state in self.states.items():
            if state == SlotState.ABANDONED:
                self.states[slot_id] = SlotState.UNSELECTED

    def solve(self) -> bool:
        self._check_deadline()
        picked = self.ws.select(self._check_deadline)
        if picked is None:
            return True
        slot, size = picked
        self.stats.slots_filled = max(self.stats.slots_filled, self.ws.filled_slots())
        self._transition(slot.id, SlotState.SELECTED_TRYING)
        candidates = self._order(slot) if size else []

        for word, _score, probe in candidates:
            self._check_deadline()
            added = (word,) + probe.completed
            with self.grid.placement(slot, word) as handle:
                self.stats.placements += 1
                self.ws.used.update(added)
                self._transition(slot.id, SlotState.PLACED)
                crossing = slot.direction.crossing()
                completed_ids = [
                    other.id
                    for other in (self.grid.slots_at(r, c)[crossing] for r, c in handle.written)
                    if self.states[other.id] != SlotState.PLACED and self.grid.is_complete(other)
                ]
                for slot_id in completed_ids:
                    self.states[slot_id] = SlotState.PLACED
                try:
                    if self.solve():
                        handle.commit()
                        return True
                finally:
                    if not handle.committed:
                        self.ws.used.difference_update(added)
            for slot_id in completed_ids:
                self.states[slot_id] = SlotState.UNSELECTED
            self._reset_abandoned()
            self._transition(slot.id, SlotState.SELECTED_TRYING)
            self.backtracks += 1
            self.stats.backtracks += 1
            if self.budget is not None and self.backtracks >= self.budget:
                raise _BudgetExhausted()

        self._transition(slot.id, SlotState.ABANDONED)
        self.stats.abandoned += 1
        return False


# ----------------------------------------------------------------------
# Public solver
# ----------------------------------------------------------------------
class FillSolver:
    """Fill engine bound to a set of shared lexical resources."""

    def __init__(self, resources: Optional[EngineResources] = None) -> None:
        self._resources = resources

    @property
    def resources(self) -> EngineResources:
        if self._resources is None:
            self._resources = get_resources()
        return self._resources

    # ------------------------------------------------------------------
    # quick_fill
    # ------------------------------------------------------------------
    def quick_fill(
        self,
        rows: GridRows,
        options: Union[FillOptions, Mapping[str, object], None] = None,
    ) -> FillResult:
        """Complete ``rows`` with dictionary words; failures come back as data."""

        started = time.monotonic()
        opts = FillOptions.coerce(options)
        deadline = started + opts.timeout_ms / 1000.0
        stats = SearchStats(engine=opts.engine.value)

        try:
            grid = MiniGrid.from_rows(rows)
        except InvalidGridError as exc:
            LOGGER.warning("Rejected grid: %s", exc)
            return self._failure(FailureReason.INVALID_GRID, started, stats, str(exc))

        clues = grid.clue_cells()
        lexicon = _Lexicon(self.resources, opts)
        ws = _Workspace(grid, lexicon)
        stats.slots_total = len(grid.slots)
        stats.structure = PuzzleStructure.from_grid(grid)

        problem = ws.preload()
        if problem is None:
            problem = self._empty_domain(ws)
        if problem is not None:
            LOGGER.info("No fill possible: %s", problem)
            stats.slots_filled = ws.filled_slots()
            return self._failure(FailureReason.NO_SOLUTION, started, stats, problem)

        if opts.engine == FillEngine.CP_SAT:
            reason = self._run_cp_sat(ws, opts, deadline, stats)
        else:
            reason = self._run_backtracking(ws, opts, deadline, stats)
        if reason is not None:
            LOGGER.warning(
                "Fill failed (%s) after %s attempt(s), %s backtracks",
                reason.value,
                stats.attempts,
                stats.backtracks,
            )
            return self._failure(reason, started, stats)

        return self._success(ws, clues, opts, started, stats)

    def _empty_domain(self, ws: _Workspace) -> Optional[str]:
        for slot in ws.grid.unfilled_slots():
            pattern = ws.grid.read_pattern(slot)
            if ws.lexicon.domain_size(slot.length, pattern, ws.used) == 0:
                return f"{slot.id} ({pattern}) has no candidates"
        return None

    def _run_backtracking(
        self,
        ws: _Workspace,
        opts: FillOptions,
        deadline: float,
        stats: SearchStats,
    ) -> Optional[FailureReason]:
        for attempt in range(1, opts.max_attempts + 1):
            stats.attempts = attempt
            budget = attempt_budget(opts.attempt_backtrack_limit, attempt, opts.max_attempts)
            rng = random.Random(opts.seed * 1_000_003 + attempt)
            search = _Search(ws, rng, deadline, budget, stats)
            try:
                solved = search.solve()
            except _SearchTimeout:
                stats.slot_states = {k: v.value for k, v in search.states.items()}
                return FailureReason.TIMEOUT
            except _BudgetExhausted:
                LOGGER.debug(
                    "Attempt %s/%s exhausted its budget of %s backtracks", attempt, opts.max_attempts, budget
                )
                continue
            stats.slot_states = {k: v.value for k, v in search.states.items()}
            if solved:
                return None
            LOGGER.debug("Attempt %s exhausted the search space", attempt)
            return FailureReason.NO_SOLUTION
        return FailureReason.NO_SOLUTION

    def _run_cp_sat(
        self,
        ws: _Workspace,
        opts: FillOptions,
        deadline: float,
        stats: SearchStats,
    ) -> Optional[FailureReason]:
        stats.attempts = 1
        domains = {
            slot.id: [word for word, _ in ws.lexicon.domain(slot.length, ws.grid.read_pattern(slot), ws.used)]
            for slot in ws.grid.unfilled_slots()
        }
        remaining = deadline - time.monotonic()
        outcome = cpsat.solve_fill(ws.grid, domains, timeout=remaining, seed=opts.seed)
        stats.backtracks = outcome.conflicts
        if outcome.status == cpsat.TIMEOUT:
            return FailureReason.TIMEOUT
        if outcome.status == cpsat.INFEASIBLE:
            return FailureReason.NO_SOLUTION
        for slot, word in outcome.assignments:
            ws.grid.place(slot, word)
            stats.placements += 1
        stats.slot_states = {slot.id: SlotState.PLACED.value for slot in ws.grid.slots}
        return None

    def _success(
        self,
        ws: _Workspace,
        clues,
        opts: FillOptions,
        started: float,
        stats: SearchStats,
    ) -> FillResult:
        grid = ws.grid
        validator = GridValidator(
            self.resources.dictionary,
            min_score=opts.min_score,
            excluded=opts.exclude_words,
        )
        verdict = validator.validate(grid, clues)
        if not verdict.ok:
            raise InternalInvariantViolated("; ".join(verdict.messages))

        words = [(slot.id, grid.read_word(slot) or "") for slot in grid.slots]
        scores = [self.resources.dictionary.score(word) for _, word in words]
        stats.slots_filled = len(words)
        elapsed = self._elapsed(started)
        stats.elapsed_ms = elapsed
        average = round(sum(scores) / len(scores), 2) if scores else 0.0
        LOGGER.info(
            "Filled %s slots in %.1fms (attempts=%s, backtracks=%s, avg score=%s)",
            len(words),
            elapsed,
            stats.attempts,
            stats.backtracks,
            average,
        )
        return FillResult(
            success=True,
            elapsed_ms=elapsed,
            solution=grid.to_rows(),
            words=words,
            quality_score=float(stats.structure.score) if stats.structure else 0.0,
            average_word_score=average,
            stats=stats,
        )

    def _failure(
        self,
        reason: FailureReason,
        started: float,
        stats: SearchStats,
        message: Optional[str] = None,
    ) -> FillResult:
        elapsed = self._elapsed(started)
        stats.elapsed_ms = elapsed
        return FillResult(success=False, elapsed_ms=elapsed, reason=reason, message=message, stats=stats)

    @staticmethod
    def _elapsed(started: float) -> float:
        return round((time.monotonic() - started) * 1000.0, 2)

    # ------------------------------------------------------------------
    # Interactive queries
    # ------------------------------------------------------------------
    def get_candidates_for_slot(
        self,
        rows: GridRows,
        slot_id: str,
        options: Union[FillOptions, Mapping[str, object], None] = None,
    ) -> CandidateList:
        """Rank words for one slot under the current grid.

        ``viable`` is true iff every crossing slot keeps at least one word
        after the placement. Ordering is by composite score
        (``score + 0.5 * mean residual crossing domain``), then by word.
        """

        opts = FillOptions.coerce(options)
        grid = MiniGrid.from_rows(rows)
        slot = grid.slot(slot_id)
        ws = _Workspace(grid, _Lexicon(self.resources, opts))
        self._collect_used(ws, skip=slot)

        pattern = grid.read_pattern(slot)
        domain = ws.lexicon.domain(slot.length, pattern, ws.used)
        ranked: List[Candidate] = []
        for word, score in domain:
            probe = ws.probe(slot, word)
            ranked.append(
                Candidate(
                    word=word,
                    score=score,
                    viable=probe.viable,
                    residual_domains=probe.residual,
                    composite_score=round(score + 0.5 * probe.residual_mean, 2),
                )
            )
        ranked.sort(key=lambda candidate: (-candidate.composite_score, candidate.word))
        selected = ranked[: opts.limit]

        if opts.compute_grid_score:
            for candidate in selected:
                with grid.placement(slot, candidate.word):
                    candidate.grid_score = self._evaluate(grid, opts).quality

        return CandidateList(
            slot=slot.to_dict(pattern),
            candidates=selected,
            total_candidates=len(domain),
        )

    def find_best_location(
        self,
        rows: GridRows,
        options: Union[FillOptions, Mapping[str, object], None] = None,
    ) -> Optional[BestLocation]:
        """Unfilled slot with the smallest live domain, or ``None`` when the grid is full."""

        opts = FillOptions.coerce(options)
        grid = MiniGrid.from_rows(rows)
        ws = _Workspace(grid, _Lexicon(self.resources, opts))
        self._collect_used(ws)
        picked = ws.select()
        if picked is None:
            return None
        slot, size = picked
        if size == 0:
            reason = f"{slot.id} has no remaining candidates"
        elif size == 1:
            reason = f"{slot.id} is forced: only one candidate fits"
        else:
            reason = f"{slot.id} is the most constrained slot ({size} candidates)"
        return BestLocation(slot=slot.to_dict(grid.read_pattern(slot)), domain_size=size, reason=reason)

    def evaluate_grid(
        self,
        rows: GridRows,
        options: Union[FillOptions, Mapping[str, object], None] = None,
    ) -> EvaluationResult:
        opts = FillOptions.coerce(options)
        return self._evaluate(MiniGrid.from_rows(rows), opts)

    def _evaluate(self, grid: MiniGrid, opts: FillOptions) -> EvaluationResult:
        dictionary = self.resources.dictionary
        words: List[Tuple[str, str, int]] = []
        invalid: List[str] = []
        low: List[str] = []
        for slot in grid.slots:
            word = grid.read_word(slot)
            if word is None:
                continue
            entry = dictionary.get(word)
            score = entry.score if entry is not None else 0
            if entry is None:
                invalid.append(word)
            elif score < opts.min_score:
                low.append(word)
            words.append((slot.id, word, score))

        complete = len(words) == len(grid.slots)
        if not words:
            quality = 0.0
        else:
            average = sum(score for _, _, score in words) / len(words)
            quality = average if complete else average * grid.filled_ratio
        return EvaluationResult(
            quality=round(quality, 2),
            complete=complete,
            filled_slots=len(words),
            total_slots=len(grid.slots),
            filled_cells=grid.filled_count,
            open_cells=grid.open_count,
            words=words,
            invalid_words=invalid,
            low_score_words=low,
            structure=PuzzleStructure.from_grid(grid),
        )

    @staticmethod
    def _collect_used(ws: _Workspace, skip: Optional[Slot] = None) -> None:
        for slot in ws.grid.slots:
            if slot is skip:
                continue
            word = ws.grid.read_word(slot)
            if word is not None:
                ws.used.add(word)


# ----------------------------------------------------------------------
# Module-level entry points over the shared resources
# ----------------------------------------------------------------------
def quick_fill(rows: GridRows, options: Union[FillOptions, Mapping[str, object], None] = None) -> FillResult:
    return FillSolver().quick_fill(rows, options)


def get_candidates_for_slot(
    rows: GridRows,
    slot_id: str,
    options: Union[FillOptions, Mapping[str, object], None] = None,
) -> CandidateList:
    return FillSolver().get_candidates_for_slot(rows, slot_id, options)


def find_best_location(
    rows: GridRows,
    options: Union[FillOptions, Mapping[str, object], None] = None,
) -> Optional[BestLocation]:
    return FillSolver().find_best_location(rows, options)


def evaluate_grid(
    rows: GridRows,
    options: Union[FillOptions, Mapping[str, object], None] = None,
) -> EvaluationResult:
    return FillSolver().evaluate_grid(rows, options)

