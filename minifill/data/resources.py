"""Process-wide dictionary, trie and pattern cache.

The bundle moves through two phases: uninitialized, then initialized and
immutable. ``get_resources`` initializes lazily behind a one-shot guard;
``initialize(force=True)`` is the only way to reload (tests use it, and so
does a caller recovering from a :class:`DictionaryLoadError`).
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from ..core.constants import DEFAULT_PATTERN_CACHE_SIZE, DEFAULT_WORD_SCORE
from ..core.exceptions import DictionaryLoadError
from ..utils.logger import get_logger
from .dictionary import DictionaryConfig, WordDictionary
from .pattern_cache import PatternCache
from .trie import PatternTrie


LOGGER = get_logger(__name__)

DEFAULT_WORDS_DIR = Path("local_db/words")

ENV_WORDS_DIR = "MINIFILL_WORDS_DIR"
ENV_MASTER_DICT = "MINIFILL_MASTER_DICT"
ENV_CACHE_SIZE = "MINIFILL_PATTERN_CACHE_SIZE"


@dataclass
class EngineConfig:
    """Where the word lists live and how large the pattern cache may grow."""

    words_dir: Path | str = DEFAULT_WORDS_DIR
    master_file: Optional[Path | str] = None
    cache_size: int = DEFAULT_PATTERN_CACHE_SIZE
    default_score: int = DEFAULT_WORD_SCORE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        env = os.environ if environ is None else environ
        config = cls()
        if env.get(ENV_WORDS_DIR):
            config.words_dir = Path(env[ENV_WORDS_DIR])
        if env.get(ENV_MASTER_DICT):
            config.master_file = Path(env[ENV_MASTER_DICT])
        raw_size = env.get(ENV_CACHE_SIZE)
        if raw_size:
            try:
                config.cache_size = max(1, int(raw_size))
            except ValueError:
                LOGGER.warning("Ignoring invalid %s=%r", ENV_CACHE_SIZE, raw_size)
        return config

    def to_dictionary_config(self) -> DictionaryConfig:
        return DictionaryConfig(path=self.words_dir, default_score=self.default_score)

    def load_dictionary(self) -> WordDictionary:
        if self.master_file:
            return WordDictionary.from_master_file(self.master_file)
        return WordDictionary.load(self.to_dictionary_config())


@dataclass(frozen=True)
class EngineResources:
    """Read-only lexical state shared by every solver invocation."""

    dictionary: WordDictionary
    trie: PatternTrie
    cache: PatternCache

    @classmethod
    def build(cls, dictionary: WordDictionary, cache_size: int = DEFAULT_PATTERN_CACHE_SIZE) -> "EngineResources":
        trie = PatternTrie(dictionary)
        return cls(dictionary=dictionary, trie=trie, cache=PatternCache(trie, max_entries=cache_size))

    @classmethod
    def from_config(cls, config: EngineConfig) -> "EngineResources":
        return cls.build(config.load_dictionary(), cache_size=config.cache_size)


_init_lock = threading.Lock()
_resources: Optional[EngineResources] = None
_load_error: Optional[DictionaryLoadError] = None


def initialize(
    config: Optional[EngineConfig] = None,
    *,
    dictionary: Optional[WordDictionary] = None,
    force: bool = False,
) -> EngineResources:
    """Build the shared resources (once, unless ``force`` is set)."""

    global _resources, _load_error
    with _init_lock:
        if _resources is not None and not force:
            return _resources
        if _load_error is not None and not force:
            raise _load_error
        config = config or EngineConfig.from_env()
        try:
            if dictionary is not None:
                resources = EngineResources.build(dictionary, cache_size=config.cache_size)
            else:
                resources = EngineResources.from_config(config)
        except DictionaryLoadError as exc:
            _load_error = exc
            LOGGER.error("Dictionary load failed: %s", exc)
            raise
        if _resources is not None:
            _resources.cache.clear()
        _resources = resources
        _load_error = None
        LOGGER.info(
            "Fill engine resources ready (%s words, dictionary %s)",
            len(resources.dictionary),
            resources.dictionary.fingerprint,
        )
        return resources


def get_resources() -> EngineResources:
    resources = _resources
    if resources is not None:
        return resources
    return initialize()


def is_initialized() -> bool:
    return _resources is not None


def reset() -> None:
    """Return to the uninitialized phase."""

    global _resources, _load_error
    with _init_lock:
        _resources = None
        _load_error = None
