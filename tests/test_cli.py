import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import MagicMock, patch

import main
from minifill.data import resources
from minifill.utils.pretty import format_candidates, format_grid, print_fill_stats

FIXTURE_WORDS = Path(__file__).parent / "fixtures" / "words"


def run_cli(*argv: str) -> str:
    buffer = io.StringIO()
    with redirect_stdout(buffer):
        main.main(["--words-dir", str(FIXTURE_WORDS), "--log-level", "ERROR", *argv])
    return buffer.getvalue()


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        resources.reset()
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.grid_path = self.root / "grid.json"
        rows = [["" for _ in range(5)] for _ in range(5)]
        rows[0] = list("APPLE")
        for r, letter in enumerate("ALOHA"):
            rows[r][0] = letter
        self.grid_path.write_text(json.dumps({"grid": rows}), encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()
        resources.reset()

    def test_fill_json(self) -> None:
        payload = json.loads(run_cli("fill", "--grid", str(self.grid_path), "--min-score", "0", "--json"))
        self.assertTrue(payload["success"])
        self.assertEqual(payload["solution"][0], list("APPLE"))
        self.assertEqual(payload["words"][0], {"slotId": "1A", "word": "APPLE"})
        self.assertNotIn("cache", payload["stats"])

    def test_fill_text_report(self) -> None:
        text = run_cli("fill", "--grid", str(self.grid_path), "--min-score", "0")
        self.assertIn("--- Words ---", text)
        self.assertIn("APPLE (90)", text)
        self.assertRegex(text, r"Pattern cache: \d+ hits, \d+ misses")

    def test_candidates_and_best(self) -> None:
        text = run_cli("candidates", "--grid", str(self.grid_path), "--slot", "2D", "--min-score", "0")
        self.assertIn("2D (5 letters, pattern P....): 5 candidates", text)
        best = json.loads(run_cli("best", "--grid", str(self.grid_path), "--min-score", "0", "--json"))
        self.assertIn("domainSize", best)

    def test_output_file(self) -> None:
        destination = self.root / "evaluation.json"
        run_cli("evaluate", "--grid", str(self.grid_path), "--output", str(destination))
        payload = json.loads(destination.read_text(encoding="utf-8"))
        self.assertEqual(payload["filledSlots"], 2)

    def test_seed_words_file(self) -> None:
        words = self.root / "seeds.txt"
        words.write_text("# theme\napple\n\naloha\n", encoding="utf-8")
        self.assertEqual(main.parse_words_file(words), ["apple", "aloha"])
        payload = json.loads(
            run_cli("seed", "--words-file", str(words), "--template", "open", "--min-score", "0", "--seed", "1", "--json")
        )
        self.assertTrue(payload["success"])
        self.assertEqual(payload["template"], "open")

    def test_candidates_requires_slot(self) -> None:
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit):
            with patch("sys.stderr", io.StringIO()):
                main.main(["candidates"])


class PrettyTests(unittest.TestCase):
    def test_format_grid_uses_symbols(self) -> None:
        text = format_grid([["A", "■"], ["", "B"]])
        self.assertIn(" 0 |  A  #", text)
        self.assertIn(" 1 |  .  B", text)

    def test_failed_fill_summary(self) -> None:
        result = MagicMock(success=False, message="1D (QX...) has no candidates", elapsed_ms=1.5)
        result.reason.value = "noSolution"
        result.stats.slots_filled = 0
        result.stats.slots_total = 10
        stream = io.StringIO()
        print_fill_stats(result, stream=stream)
        self.assertIn("Fill failed: noSolution", stream.getvalue())
        self.assertIn("0/10", stream.getvalue())

    def test_format_candidates_marks_dead_ends(self) -> None:
        listing = MagicMock(total_candidates=1, slot={"id": "2D", "length": 5, "pattern": "P...."})
        listing.candidates = [MagicMock(word="PARTS", score=65, viable=False, composite_score=65.0, grid_score=None)]
        text = format_candidates(listing)
        self.assertIn("x PARTS", text)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
