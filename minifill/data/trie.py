"""Compressed prefix trees answering positional pattern queries.

One tree is kept per word length. Edges carry runs of letters (a chain of
single-child nodes collapses into one edge) and are keyed by their first
letter. Every word in a tree has the same length, so terminals are leaves.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from ..core.constants import WILDCARD
from .dictionary import WordDictionary
from .normalization import PatternLike, canonical_pattern, is_valid_word


Match = Tuple[str, int]


class TrieNode:
    """Internal nodes carry no payload; leaves hold the word and its score."""

    __slots__ = ("edges", "word", "score", "size")

    def __init__(self) -> None:
        self.edges: Dict[str, Tuple[str, TrieNode]] = {}
        self.word: Optional[str] = None
        self.score: Optional[int] = None
        self.size = 0


class PatternTrie:
    """Per-length compressed tries built from a :class:`WordDictionary`."""

    def __init__(self, dictionary: WordDictionary) -> None:
        self.dictionary = dictionary
        self._roots: Dict[int, TrieNode] = {}
        self._buckets: Dict[int, List[Match]] = {}
        for length in dictionary.lengths():
            bucket = dictionary.entries_of_length(length)
            self._buckets[length] = bucket
            self._roots[length] = self._build(bucket)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @staticmethod
    def _build(entries: Iterable[Match]) -> TrieNode:
        root = TrieNode()
        for word, score in entries:
            node = root
            for letter in word:
                edge = node.edges.get(letter)
                if edge is None:
                    child = TrieNode()
                    node.edges[letter] = (letter, child)
                else:
                    child = edge[1]
                node = child
            node.word = word
            node.score = score
        PatternTrie._compress(root)
        return root

    @staticmethod
    def _compress(node: TrieNode) -> int:
        """Collapse single-child chains, sort edges, and record leaf counts."""

        if node.word is not None:
            node.size = 1
            return 1
        compressed: Dict[str, Tuple[str, TrieNode]] = {}
        total = 0
        for first in sorted(node.edges):
            label, child = node.edges[first]
            while child.word is None and len(child.edges) == 1:
                (next_label, grandchild), = child.edges.values()
                label += next_label
                child = grandchild
            total += PatternTrie._compress(child)
            compressed[first] = (label, child)
        node.edges = compressed
        node.size = total
        return total

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def lengths(self) -> List[int]:
        return sorted(self._roots)

    def bucket(self, length: int) -> List[Match]:
        return list(self._buckets.get(length, ()))

    def query(self, length: int, pattern: PatternLike, max_results: Optional[int] = None) -> List[Match]:
        """Return ``(word, score)`` pairs of ``length`` matching ``pattern``.

        An all-wildcard pattern returns the whole bucket in dictionary
        order; anything else is enumerated in trie order (alphabetical).
        """

        canonical = self.normalize_query(length, pattern)
        if max_results is not None and max_results <= 0:
            return []
        root = self._roots.get(length)
        if root is None:
            return []
        if all(ch == WILDCARD for ch in canonical):
            bucket = self._buckets[length]
            return list(bucket if max_results is None else bucket[:max_results])
        out: List[Match] = []
        self._collect(root, 0, canonical, out, max_results)
        return out

    def count(self, length: int, pattern: PatternLike) -> int:
        canonical = self.normalize_query(length, pattern)
        root = self._roots.get(length)
        if root is None:
            return 0
        return self._count(root, 0, canonical)

    def contains(self, word: str) -> bool:
        return self.score(word) is not None

    def score(self, word: str) -> Optional[int]:
        if not is_valid_word(word):
            return None
        matches = self.query(len(word), word.upper(), max_results=1)
        return matches[0][1] if matches else None

    @staticmethod
    def normalize_query(length: int, pattern: PatternLike) -> str:
        canonical = canonical_pattern(pattern)
        if len(canonical) != length:
            raise ValueError(f"Pattern {canonical!r} does not have length {length}")
        return canonical

    @staticmethod
    def _label_fits(label: str, pattern: str, depth: int) -> bool:
        for offset in range(1, len(label)):
            wanted = pattern[depth + offset]
            if wanted != WILDCARD and wanted != label[offset]:
                return False
        return True

    def _edges_for(self, node: TrieNode, pattern: str, depth: int):
        wanted = pattern[depth]
        if wanted == WILDCARD:
            return node.edges.values()
        edge = node.edges.get(wanted)
        return (edge,) if edge is not None else ()

    def _collect(self, node: TrieNode, depth: int, pattern: str, out: List[Match], limit: Optional[int]) -> bool:
        if node.word is not None:
            out.append((node.word, node.score))
            return limit is not None and len(out) >= limit
        for label, child in self._edges_for(node, pattern, depth):
            if not self._label_fits(label, pattern, depth):
                continue
            if self._collect(child, depth + len(label), pattern, out, limit):
                return True
        return False

    def _count(self, node: TrieNode, depth: int, pattern: str) -> int:
        if node.word is not None:
            return 1
        if all(ch == WILDCARD for ch in pattern[depth:]):
            return node.size
        total = 0
        for label, child in self._edges_for(node, pattern, depth):
            if self._label_fits(label, pattern, depth):
                total += self._count(child, depth + len(label), pattern)
        return total
