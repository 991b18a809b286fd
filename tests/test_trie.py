import unittest
from pathlib import Path

from minifill.data.dictionary import DictionaryConfig, WordDictionary
from minifill.data.trie import PatternTrie

FIXTURE_WORDS = Path(__file__).parent / "fixtures" / "words"


class PatternTrieTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.dictionary = WordDictionary.load(DictionaryConfig(path=FIXTURE_WORDS))
        cls.trie = PatternTrie(cls.dictionary)

    def test_exact_query_returns_each_word_with_its_score(self) -> None:
        for entry in self.dictionary.iter_entries():
            with self.subTest(word=entry.word):
                self.assertEqual(
                    self.trie.query(entry.length, entry.word),
                    [(entry.word, entry.score)],
                )

    def test_all_wildcards_return_bucket_in_dictionary_order(self) -> None:
        for length in self.dictionary.lengths():
            with self.subTest(length=length):
                self.assertEqual(
                    self.trie.query(length, "." * length),
                    self.dictionary.entries_of_length(length),
                )

    def test_positional_query_is_alphabetical(self) -> None:
        matches = self.trie.query(5, "P....")
        self.assertEqual(
            [word for word, _ in matches],
            ["PACOS", "PARTS", "PIANO", "PLANE", "PSETS"],
        )
        self.assertEqual([word for word, _ in self.trie.query(5, "..E.T")], ["ALERT"])
        self.assertEqual(self.trie.query(5, "QX..."), [])

    def test_query_accepts_sequence_patterns(self) -> None:
        self.assertEqual(
            self.trie.query(5, ["H", None, None, None, "L"]),
            [("HOTEL", 85)],
        )

    def test_max_results_short_circuits(self) -> None:
        self.assertEqual(len(self.trie.query(5, "P....", max_results=2)), 2)
        self.assertEqual(self.trie.query(5, ".....", max_results=1), [("APPLE", 90)])
        self.assertEqual(self.trie.query(5, "P....", max_results=0), [])

    def test_count_matches_query_length(self) -> None:
        for pattern in (".....", "A....", "..E..", "S...E", "ZZZZZ"):
            with self.subTest(pattern=pattern):
                self.assertEqual(self.trie.count(5, pattern), len(self.trie.query(5, pattern)))
        self.assertEqual(self.trie.count(3, "..."), len(self.dictionary.words_of_length(3)))

    def test_contains_and_score(self) -> None:
        self.assertTrue(self.trie.contains("ocean"))
        self.assertFalse(self.trie.contains("OCEANS"))
        self.assertFalse(self.trie.contains("0CEAN"))
        self.assertEqual(self.trie.score("TEA"), 70)
        self.assertIsNone(self.trie.score("TEN"))

    def test_unknown_length_is_empty(self) -> None:
        self.assertEqual(self.trie.query(6, "......"), [])
        self.assertEqual(self.trie.count(6, "......"), 0)

    def test_pattern_length_must_match(self) -> None:
        with self.assertRaises(ValueError):
            self.trie.query(5, "A...")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
