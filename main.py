"""CLI entrypoint for the 5x5 mini crossword fill engine."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from minifill.core.constants import DEFAULT_MIN_SCORE, DEFAULT_TIMEOUT_MS, FillEngine, Symmetry
from minifill.data.resources import EngineConfig, initialize
from minifill.engine.grid import MiniGrid
from minifill.engine.seeding import TEMPLATES, SeedConfig, themed_fill
from minifill.engine.solver import FillOptions, FillSolver
from minifill.utils.logger import configure_logging
from minifill.utils.pretty import format_candidates, format_evaluation, print_fill_stats


def parse_words_file(path: Path) -> List[str]:
    """Read words from a file, one entry per line. Blank lines and # comments are skipped."""
    entries: List[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        entries.append(line)
    return entries


def load_grid(path: Path | None) -> List[List[str]]:
    """Load a 5x5 grid from JSON; without a file, start from an all-open grid."""
    if path is None:
        return MiniGrid.empty().to_rows()
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("grid", payload.get("solution"))
    return payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fill 5x5 mini crossword grids")
    parser.add_argument(
        "action",
        choices=["fill", "candidates", "best", "evaluate", "seed"],
        help="Operation to run",
    )
    parser.add_argument("--grid", type=Path, help="JSON file holding the 5x5 grid (array of rows)")
    parser.add_argument("--slot", type=str, help="Slot id for the candidates action (e.g. 2D)")
    parser.add_argument("--words-dir", type=Path, help="Directory with N_letter_words.txt lists")
    parser.add_argument("--master-dict", type=Path, help="WORD;SCORE master dictionary file")
    parser.add_argument("--min-score", type=int, default=DEFAULT_MIN_SCORE, help="Minimum word score")
    parser.add_argument("--exclude", nargs="+", metavar="WORD", default=[], help="Words that must not appear")
    parser.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS, help="Search time budget")
    parser.add_argument("--max-attempts", type=int, default=None, help="Retry limit for the backtracking search")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument(
        "--engine",
        type=str,
        choices=[engine.value for engine in FillEngine],
        default=FillEngine.BACKTRACKING.value,
        help="Search backend",
    )
    parser.add_argument("--limit", type=int, default=None, help="Maximum candidates to list")
    parser.add_argument("--grid-score", action="store_true", help="Project grid quality for each candidate")
    parser.add_argument("--words", nargs="+", metavar="WORD", help="Seed words for the seed action")
    parser.add_argument("--words-file", type=Path, metavar="FILE", help="File with one seed word per line")
    parser.add_argument("--template", type=str, choices=sorted(TEMPLATES), help="Black-square template")
    parser.add_argument(
        "--symmetry",
        type=str,
        choices=[symmetry.value for symmetry in Symmetry],
        default=Symmetry.NONE.value,
        help="Symmetry applied to the template",
    )
    parser.add_argument("--json", action="store_true", help="Print the raw JSON payload")
    parser.add_argument("--output", type=Path, help="Optional path to JSON output")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def build_options(args: argparse.Namespace) -> FillOptions:
    overrides: Dict[str, Any] = {
        "min_score": args.min_score,
        "exclude_words": args.exclude,
        "timeout_ms": args.timeout_ms,
        "rng_seed": args.seed,
        "engine": args.engine,
        "compute_grid_score": args.grid_score,
    }
    if args.max_attempts is not None:
        overrides["max_attempts"] = args.max_attempts
    if args.limit is not None:
        overrides["limit"] = args.limit
    return FillOptions(**overrides)


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = getattr(logging, args.log_level.upper(), logging.INFO)
    configure_logging(level)

    if args.action == "candidates" and not args.slot:
        parser.error("the candidates action requires --slot")
    if args.action == "seed" and not (args.words or args.words_file):
        parser.error("the seed action requires --words or --words-file")

    config = EngineConfig.from_env()
    if args.words_dir:
        config.words_dir = args.words_dir
    if args.master_dict:
        config.master_file = args.master_dict
    resources = initialize(config, force=True)

    solver = FillSolver(resources)
    options = build_options(args)
    rows = load_grid(args.grid)
    text = None

    if args.action == "fill":
        result = solver.quick_fill(rows, options)
        payload: Any = result.to_dict()
        if not args.json:
            print_fill_stats(result, resources.dictionary, cache=resources.cache.stats())
    elif args.action == "candidates":
        listing = solver.get_candidates_for_slot(rows, args.slot, options)
        payload = listing.to_dict()
        text = format_candidates(listing)
    elif args.action == "best":
        best = solver.find_best_location(rows, options)
        payload = best.to_dict() if best is not None else None
        text = best.reason if best is not None else "Every slot is filled"
    elif args.action == "evaluate":
        evaluation = solver.evaluate_grid(rows, options)
        payload = evaluation.to_dict()
        text = format_evaluation(evaluation)
    else:
        seeds: List[str] = list(args.words or [])
        if args.words_file:
            seeds.extend(parse_words_file(args.words_file))
        seed_config = SeedConfig(template=args.template, symmetry=args.symmetry, rng_seed=args.seed)
        themed = themed_fill(seeds, options, config=seed_config, solver=solver)
        payload = themed.to_dict()
        if themed.fill is not None and not args.json:
            print_fill_stats(themed.fill, resources.dictionary, cache=resources.cache.stats())
        elif themed.message:
            text = themed.message

    output_text = json.dumps(payload, ensure_ascii=False, indent=2)
    if args.output:
        args.output.write_text(output_text, encoding="utf-8")
    elif args.json:
        print(output_text)
    elif text:
        print(text)


if __name__ == "__main__":  # pragma: no cover
    main()
