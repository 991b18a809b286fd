import copy
import random
import string
import unittest
from pathlib import Path
from unittest.mock import patch

from minifill.core.constants import BLACK_SQUARE, FailureReason, FillEngine
from minifill.core.exceptions import InvalidGridError, UnknownSlotError
from minifill.data.dictionary import DictionaryConfig, WordDictionary
from minifill.data.resources import EngineResources
from minifill.engine.grid import MiniGrid
from minifill.engine.solver import (
    FillOptions,
    FillSolver,
    SearchStats,
    _Lexicon,
    _Search,
    _SearchTimeout,
    _Workspace,
    attempt_budget,
)

FIXTURE_WORDS = Path(__file__).parent / "fixtures" / "words"

APPLE_SQUARE = ["APPLE", "LASER", "OCEAN", "HOTEL", "ASSET"]

# Blocks at (0,0) and (4,4); every entry is planted so the layout has a fill.
CORNER_SQUARE = [BLACK_SQUARE + "BIRD", "CAMEL", "ROBIN", "OWLET", "WREN" + BLACK_SQUARE]
CORNER_WORDS = ["BIRD", "CAMEL", "ROBIN", "OWLET", "WREN", "CROW", "BAOWR", "IMBLE", "REIEN", "DLNT"]


def open_rows():
    return [["" for _ in range(5)] for _ in range(5)]


def seeded_rows():
    rows = open_rows()
    rows[0] = list("APPLE")
    for r, letter in enumerate("ALOHA"):
        rows[r][0] = letter
    return rows


def corner_rows():
    rows = open_rows()
    rows[0][0] = BLACK_SQUARE
    rows[4][4] = BLACK_SQUARE
    return rows


def generated_dictionary(count: int, seed: int = 7) -> WordDictionary:
    rng = random.Random(seed)
    words = set()
    while len(words) < count:
        words.add("".join(rng.choice(string.ascii_uppercase) for _ in range(5)))
    return WordDictionary.from_entries((word, rng.randint(30, 90)) for word in sorted(words))


class SolverTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.dictionary = WordDictionary.load(DictionaryConfig(path=FIXTURE_WORDS))
        cls.solver = FillSolver(EngineResources.build(cls.dictionary))

    def assertSoundFill(self, result, min_score=0, excluded=()):
        self.assertTrue(result.success, result.to_dict())
        grid = MiniGrid.from_rows(result.solution)
        self.assertEqual([slot_id for slot_id, _ in result.words], [slot.id for slot in grid.slots])
        words = [word for _, word in result.words]
        self.assertEqual(len(words), len(set(words)))
        for slot_id, word in result.words:
            self.assertEqual(grid.read_word(grid.slot(slot_id)), word)
            self.assertTrue(self.dictionary.has(word), word)
            self.assertGreaterEqual(self.dictionary.score(word), min_score)
            self.assertNotIn(word, excluded)


class QuickFillScenarioTests(SolverTestCase):
    def test_all_open_grid_fills_with_five_letter_words(self) -> None:
        rows = open_rows()
        result = self.solver.quick_fill(rows, {"minScore": 0, "rngSeed": 1})
        self.assertSoundFill(result)
        self.assertEqual(len(result.words), 10)
        self.assertTrue(all(len(word) == 5 for _, word in result.words))
        self.assertEqual(rows, open_rows())
        self.assertEqual(result.quality_score, 350.0)
        self.assertEqual(result.stats.slots_filled, 10)

    def test_seeded_words_are_kept(self) -> None:
        rows = seeded_rows()
        original = copy.deepcopy(rows)
        result = self.solver.quick_fill(rows, {"minScore": 0})
        self.assertSoundFill(result)
        words = dict(result.words)
        self.assertEqual(words["1A"], "APPLE")
        self.assertEqual(words["1D"], "ALOHA")
        self.assertEqual(rows, original)
        for r, c in ((0, c) for c in range(5)):
            self.assertEqual(result.solution[r][c], "APPLE"[c])
        for item in MiniGrid.from_rows(result.solution).intersections:
            r, c = item.cell
            self.assertEqual(words[item.across_id][item.across_index], result.solution[r][c])
            self.assertEqual(words[item.down_id][item.down_index], result.solution[r][c])

    def test_exclusions_are_respected(self) -> None:
        excluded = {"APPLE", "ALOHA", "ABOUT"}
        result = self.solver.quick_fill(
            open_rows(), FillOptions(min_score=0, exclude_words=["apple", "Aloha", "about"])
        )
        self.assertSoundFill(result, excluded=excluded)

    def test_empty_domain_fails_fast_without_touching_grid(self) -> None:
        rows = open_rows()
        rows[0][0] = "Q"
        rows[1][0] = "X"
        original = copy.deepcopy(rows)
        result = self.solver.quick_fill(rows, {"minScore": 0})
        self.assertFalse(result.success)
        self.assertEqual(result.reason, FailureReason.NO_SOLUTION)
        self.assertIn("1D", result.message)
        self.assertLess(result.elapsed_ms, 50)
        self.assertEqual(rows, original)

    def test_tight_timeout_either_fills_or_times_out(self) -> None:
        rows = open_rows()
        result = self.solver.quick_fill(rows, {"minScore": 0, "timeoutMs": 50, "excludeWords": ["APPLE"]})
        if result.success:
            self.assertSoundFill(result, excluded={"APPLE"})
        else:
            self.assertEqual(result.reason, FailureReason.TIMEOUT)
        self.assertLessEqual(result.elapsed_ms, 100)
        self.assertEqual(rows, open_rows())

    def test_zero_timeout_reports_timeout(self) -> None:
        result = self.solver.quick_fill(open_rows(), {"minScore": 0, "timeoutMs": 0})
        self.assertFalse(result.success)
        self.assertEqual(result.reason, FailureReason.TIMEOUT)
        payload = result.to_dict()
        self.assertEqual(payload["reason"], "timeout")
        self.assertNotIn("solution", payload)

    def test_candidates_for_second_down(self) -> None:
        listing = self.solver.get_candidates_for_slot(
            seeded_rows(), "2D", {"minScore": 0, "computeGridScore": True}
        )
        self.assertEqual(listing.slot["pattern"], "P....")
        self.assertTrue(1 <= len(listing.candidates) <= 50)
        self.assertEqual(listing.total_candidates, 5)
        for candidate in listing.candidates:
            self.assertTrue(candidate.word.startswith("P"))
            self.assertIsNotNone(candidate.grid_score)
        viable = [candidate for candidate in listing.candidates if candidate.viable]
        self.assertEqual([candidate.word for candidate in viable], ["PACOS"])
        self.assertTrue(all(size >= 1 for size in viable[0].residual_domains.values()))

        rows = seeded_rows()
        for r, letter in enumerate("PACOS"):
            rows[r][1] = letter
        for slot_id in ("6A", "7A", "8A", "9A"):
            with self.subTest(slot=slot_id):
                crossing = self.solver.get_candidates_for_slot(rows, slot_id, {"minScore": 0})
                self.assertGreaterEqual(crossing.total_candidates, 1)


class SoundnessTests(SolverTestCase):
    def test_min_score_is_honoured(self) -> None:
        result = self.solver.quick_fill(seeded_rows(), {"minScore": 26, "rngSeed": 3})
        self.assertSoundFill(result, min_score=26)

    def test_same_seed_gives_same_fill(self) -> None:
        options = {"minScore": 0, "rngSeed": 42}
        first = self.solver.quick_fill(open_rows(), options)
        second = self.solver.quick_fill(open_rows(), options)
        self.assertEqual(first.solution, second.solution)
        self.assertEqual(first.words, second.words)
        self.assertEqual(first.stats.backtracks, second.stats.backtracks)

    def test_same_seed_gives_same_payload(self) -> None:
        options = {"minScore": 0, "rngSeed": 9}
        payloads = [self.solver.quick_fill(open_rows(), options).to_dict() for _ in range(2)]
        for payload in payloads:
            payload.pop("elapsedMs")
            payload["stats"].pop("elapsedMs")
            self.assertNotIn("cache", payload["stats"])
        self.assertEqual(payloads[0], payloads[1])

    def test_repeated_precomplete_word_is_rejected(self) -> None:
        rows = open_rows()
        rows[0] = list("APPLE")
        rows[4] = list("APPLE")
        result = self.solver.quick_fill(rows, {"minScore": 0})
        self.assertEqual(result.reason, FailureReason.NO_SOLUTION)
        self.assertIn("repeats", result.message)

    def test_precomplete_word_must_be_allowed(self) -> None:
        rows = open_rows()
        rows[0] = list("APPLE")
        result = self.solver.quick_fill(rows, {"minScore": 0, "excludeWords": ["APPLE"]})
        self.assertEqual(result.reason, FailureReason.NO_SOLUTION)

    def test_exhausted_search_is_no_solution(self) -> None:
        rows = seeded_rows()
        result = self.solver.quick_fill(rows, {"minScore": 0, "excludeWords": ["HOTEL"], "maxAttempts": 1})
        self.assertFalse(result.success)
        self.assertEqual(result.reason, FailureReason.NO_SOLUTION)
        self.assertEqual(rows, seeded_rows())

    def test_malformed_grid_is_reported_as_data(self) -> None:
        rows = open_rows()
        rows[0][1] = BLACK_SQUARE
        result = self.solver.quick_fill(rows)
        self.assertFalse(result.success)
        self.assertEqual(result.reason, FailureReason.INVALID_GRID)
        self.assertEqual(result.to_dict()["reason"], "invalidGrid")

    def test_filled_grid_is_returned_unchanged(self) -> None:
        rows = [list(word) for word in APPLE_SQUARE]
        result = self.solver.quick_fill(rows, {"minScore": 0})
        self.assertSoundFill(result)
        self.assertEqual(result.solution, rows)
        self.assertEqual(result.average_word_score, 59.7)


class BlockedGridTests(SolverTestCase):
    @classmethod
    def setUpClass(cls) -> None:
        fixture = WordDictionary.load(DictionaryConfig(path=FIXTURE_WORDS))
        entries = [(entry.word, entry.score) for entry in fixture.iter_entries()]
        entries.extend((word, 50) for word in CORNER_WORDS)
        cls.dictionary = WordDictionary.from_entries(entries)
        cls.solver = FillSolver(EngineResources.build(cls.dictionary))

    def test_corner_blocks_fill_with_mixed_lengths(self) -> None:
        rows = corner_rows()
        result = self.solver.quick_fill(rows, {"minScore": 0, "rngSeed": 4})
        self.assertSoundFill(result)
        self.assertEqual(rows, corner_rows())
        self.assertEqual(result.solution[0][0], BLACK_SQUARE)
        self.assertEqual(result.solution[4][4], BLACK_SQUARE)
        lengths = {slot_id: len(word) for slot_id, word in result.words}
        self.assertEqual(
            lengths,
            {"1A": 4, "5A": 5, "6A": 5, "7A": 5, "8A": 4, "1D": 5, "2D": 5, "3D": 5, "4D": 4, "5D": 4},
        )
        self.assertEqual(result.stats.structure.block_count, 2)

    def test_planted_square_is_a_valid_fill(self) -> None:
        rows = [list(word) for word in CORNER_SQUARE]
        result = self.solver.quick_fill(rows, {"minScore": 0})
        self.assertSoundFill(result)
        self.assertEqual(sorted(word for _, word in result.words), sorted(CORNER_WORDS))

    def test_seeded_corner_grid_completes_planted_entries(self) -> None:
        rows = corner_rows()
        rows[2] = list("ROBIN")
        rows[1][0] = "C"
        result = self.solver.quick_fill(rows, {"minScore": 0, "rngSeed": 2})
        self.assertSoundFill(result)
        self.assertEqual(result.solution[2], list("ROBIN"))

    def test_small_restart_budgets_still_fill(self) -> None:
        result = self.solver.quick_fill(
            corner_rows(),
            {"minScore": 0, "rngSeed": 11, "attemptBacktrackLimit": 1, "maxAttempts": 4},
        )
        self.assertSoundFill(result)
        self.assertLessEqual(result.stats.attempts, 4)

    def test_cp_sat_fills_corner_grid(self) -> None:
        result = self.solver.quick_fill(corner_rows(), {"minScore": 0, "engine": "cp_sat"})
        self.assertSoundFill(result)


class RestartBudgetTests(unittest.TestCase):
    def test_budget_doubles_until_last_attempt(self) -> None:
        budgets = [attempt_budget(2000, attempt, 5) for attempt in range(1, 6)]
        self.assertEqual(budgets, [2000, 4000, 8000, 16000, None])

    def test_single_attempt_and_unbounded_limit(self) -> None:
        self.assertIsNone(attempt_budget(10, 1, 1))
        self.assertIsNone(attempt_budget(None, 1, 5))


class DeadlineTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.large = generated_dictionary(20000)
        cls.fixture = WordDictionary.load(DictionaryConfig(path=FIXTURE_WORDS))

    def test_tight_timeout_on_large_dictionary(self) -> None:
        # Fresh resources so every pattern query starts cold.
        solver = FillSolver(EngineResources.build(self.large))
        rows = open_rows()
        result = solver.quick_fill(rows, {"minScore": 0, "timeoutMs": 50})
        if not result.success:
            self.assertEqual(result.reason, FailureReason.TIMEOUT)
        self.assertLessEqual(result.elapsed_ms, 100)
        self.assertEqual(rows, open_rows())

    def test_tight_timeout_on_large_dictionary_with_seed_word(self) -> None:
        solver = FillSolver(EngineResources.build(self.large))
        rows = open_rows()
        rows[0] = list(self.large.words_of_length(5)[0])
        original = copy.deepcopy(rows)
        result = solver.quick_fill(rows, {"minScore": 0, "timeoutMs": 50})
        if not result.success:
            self.assertIn(result.reason, (FailureReason.TIMEOUT, FailureReason.NO_SOLUTION))
        self.assertLessEqual(result.elapsed_ms, 100)
        self.assertEqual(rows, original)

    def test_timeout_mid_search_restores_working_grid(self) -> None:
        resources = EngineResources.build(self.fixture)
        grid = MiniGrid.from_rows(open_rows())
        ws = _Workspace(grid, _Lexicon(resources, FillOptions(min_score=0)))
        stats = SearchStats()
        search = _Search(ws, random.Random(1), 1.0, None, stats)
        before = grid.state_key()

        with patch("minifill.engine.solver.time") as clock:
            # The clock jumps past the deadline once three words are down.
            clock.monotonic.side_effect = lambda: 10.0 if stats.placements >= 3 else 0.0
            with self.assertRaises(_SearchTimeout):
                search.solve()

        self.assertEqual(stats.placements, 3)
        self.assertEqual(grid.state_key(), before)
        self.assertEqual(ws.used, set())
        self.assertEqual(grid.unfilled_slots(), grid.slots)


class CpSatEngineTests(SolverTestCase):
    def test_cp_sat_fills_seeded_grid(self) -> None:
        result = self.solver.quick_fill(
            seeded_rows(), {"minScore": 0, "engine": "cp_sat", "rngSeed": 5}
        )
        self.assertSoundFill(result)
        self.assertEqual(result.stats.engine, FillEngine.CP_SAT.value)
        self.assertEqual(dict(result.words)["1A"], "APPLE")

    def test_cp_sat_reports_infeasible(self) -> None:
        result = self.solver.quick_fill(
            seeded_rows(), {"minScore": 0, "engine": "cp_sat", "excludeWords": ["HOTEL"]}
        )
        self.assertEqual(result.reason, FailureReason.NO_SOLUTION)


class InteractiveQueryTests(SolverTestCase):
    def test_best_location_has_smallest_domain(self) -> None:
        rows = seeded_rows()
        options = {"minScore": 0}
        best = self.solver.find_best_location(rows, options)
        self.assertIsNotNone(best)
        grid = MiniGrid.from_rows(rows)
        for slot in grid.unfilled_slots():
            listing = self.solver.get_candidates_for_slot(rows, slot.id, options)
            self.assertLessEqual(best.domain_size, listing.total_candidates, slot.id)
        self.assertIn(best.slot["id"], best.reason)

    def test_best_location_on_full_grid(self) -> None:
        rows = [list(word) for word in APPLE_SQUARE]
        self.assertIsNone(self.solver.find_best_location(rows, {"minScore": 0}))

    def test_candidate_ordering_and_limit(self) -> None:
        listing = self.solver.get_candidates_for_slot(open_rows(), "1A", {"minScore": 0, "limit": 3})
        self.assertEqual(len(listing.candidates), 3)
        self.assertEqual(listing.total_candidates, len(self.dictionary.words_of_length(5)))
        keys = [(-c.composite_score, c.word) for c in listing.candidates]
        self.assertEqual(keys, sorted(keys))

    def test_unknown_slot_and_bad_grid_raise(self) -> None:
        with self.assertRaises(UnknownSlotError):
            self.solver.get_candidates_for_slot(open_rows(), "12A")
        with self.assertRaises(InvalidGridError):
            self.solver.find_best_location([["A"]])

    def test_evaluate_complete_grid(self) -> None:
        evaluation = self.solver.evaluate_grid([list(word) for word in APPLE_SQUARE], {"minScore": 30})
        self.assertTrue(evaluation.complete)
        self.assertEqual(evaluation.quality, 59.7)
        self.assertEqual(evaluation.invalid_words, [])
        self.assertEqual(sorted(evaluation.low_score_words), ["ERNLT", "LEAEE"])

    def test_evaluate_partial_grid(self) -> None:
        evaluation = self.solver.evaluate_grid(seeded_rows(), {"minScore": 0})
        self.assertFalse(evaluation.complete)
        self.assertEqual(evaluation.filled_slots, 2)
        self.assertEqual(evaluation.filled_cells, 9)
        self.assertEqual(evaluation.quality, 28.8)

    def test_evaluate_flags_unknown_words(self) -> None:
        rows = open_rows()
        rows[0] = list("ZZZZZ")
        evaluation = self.solver.evaluate_grid(rows)
        self.assertEqual(evaluation.invalid_words, ["ZZZZZ"])
        self.assertEqual(evaluation.quality, 0.0)
        self.assertEqual(evaluation.to_dict()["structure"]["score"], 350)


class FillOptionsTests(unittest.TestCase):
    def test_from_mapping_normalizes(self) -> None:
        options = FillOptions.from_mapping(
            {
                "minScore": 150,
                "excludeWords": ["apple", "", "al-oha"],
                "timeoutMs": -5,
                "engine": "cp_sat",
                "rngSeed": 7,
                "maxAttempts": 0,
                "somethingElse": True,
            }
        )
        self.assertEqual(options.min_score, 100)
        self.assertEqual(options.exclude_words, frozenset({"APPLE", "ALOHA"}))
        self.assertEqual(options.timeout_ms, 0)
        self.assertEqual(options.engine, FillEngine.CP_SAT)
        self.assertEqual(options.seed, 7)
        self.assertEqual(options.max_attempts, 1)

    def test_defaults(self) -> None:
        options = FillOptions.coerce(None)
        self.assertEqual(options.min_score, 25)
        self.assertEqual(options.timeout_ms, 5000)
        self.assertEqual(options.max_attempts, 100)
        self.assertEqual(options.seed, 0)
        self.assertIs(FillOptions.coerce(options), options)

    def test_unknown_engine_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            FillOptions(engine="genetic")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
