"""Fill engine for 5x5 mini crosswords.

This package exposes the public API surface via:

- ``minifill.engine.solver.FillSolver``: quick fill plus the interactive
  slot queries (candidates, best next slot, grid evaluation).
- ``minifill.data.resources``: the process-wide dictionary, trie and
  pattern cache, initialized once.
- ``minifill.engine.seeding``: templates, symmetry and themed seed fill.
"""

from .data.dictionary import DictionaryConfig, WordDictionary
from .data.resources import EngineConfig, get_resources, initialize
from .engine.grid import MiniGrid
from .engine.solver import (
    FillOptions,
    FillResult,
    FillSolver,
    evaluate_grid,
    find_best_location,
    get_candidates_for_slot,
    quick_fill,
)

__all__ = [
    "DictionaryConfig",
    "EngineConfig",
    "FillOptions",
    "FillResult",
    "FillSolver",
    "MiniGrid",
    "WordDictionary",
    "evaluate_grid",
    "find_best_location",
    "get_candidates_for_slot",
    "get_resources",
    "initialize",
    "quick_fill",
]

__version__ = "0.1.0"
