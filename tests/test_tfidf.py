from __future__ import annotations

import math
import unittest

import numpy as np

from mining.keywords import cooccurrences, term_to_docs, top_keywords, top_keywords_for_subset
from mining.tfidf import corpus_stats, row_norms, term_index, vectorize


def make_corpus() -> list[list[str]]:
    return [
        ["hello", "world", "hello"],
        ["hello", "rust"],
        ["world", "rust", "rust"],
    ]


class VectorizerTests(unittest.TestCase):
    def test_build_tfidf_basic(self) -> None:
        result = vectorize(make_corpus(), min_df=2)
        self.assertEqual(result.doc_count, 3)
        self.assertEqual(result.vocab_size, 3)
        self.assertEqual(result.matrix.shape, (3, 3))
        self.assertEqual(result.vocabulary, ["hello", "rust", "world"])
        self.assertEqual(len(result.idf), 3)
        self.assertEqual(result.doc_freq.tolist(), [2, 2, 2])

    def test_min_df_filter(self) -> None:
        corpus = [["common", "rare"], ["common", "other_rare"], ["common"]]
        result = vectorize(corpus, min_df=2)
        self.assertEqual(result.vocabulary, ["common"])
        self.assertIsNone(term_index(result, "rare"))
        self.assertEqual(term_index(result, "common"), 0)

    def test_vocabulary_iff_min_df(self) -> None:
        corpus = [["a", "b", "c"], ["a", "b"], ["a"], ["d", "d", "d"]]
        for min_df in (1, 2, 3, 4):
            result = vectorize(corpus, min_df=min_df)
            df = {"a": 3, "b": 2, "c": 1, "d": 1}
            expected = sorted(term for term, freq in df.items() if freq >= min_df)
            self.assertEqual(result.vocabulary, expected, f"min_df={min_df}")

    def test_sublinear_tf_and_smooth_idf(self) -> None:
        corpus = [["common", "rare", "rare", "rare"], ["common", "rare"], ["common"], ["common"]]
        result = vectorize(corpus, min_df=1)
        n = 4.0
        common, rare = result.vocab_index["common"], result.vocab_index["rare"]
        self.assertAlmostEqual(result.idf[common], math.log(1 + n / 5.0), places=12)
        self.assertAlmostEqual(result.idf[rare], math.log(1 + n / 3.0), places=12)

        w_common = 1.0 * result.idf[common]
        w_rare = (1.0 + math.log(3)) * result.idf[rare]
        norm = math.hypot(w_common, w_rare)
        row = result.matrix.toarray()[0]
        self.assertAlmostEqual(row[common], w_common / norm, places=12)
        self.assertAlmostEqual(row[rare], w_rare / norm, places=12)

    def test_row_norms_are_one_or_zero(self) -> None:
        corpus = [["a", "b"], [], ["a", "a", "c"], ["z"], ["b", "c", "c"]]
        result = vectorize(corpus, min_df=2)
        norms = row_norms(result)
        self.assertAlmostEqual(norms[0], 1.0, delta=1e-9)
        self.assertEqual(norms[1], 0.0)
        self.assertAlmostEqual(norms[2], 1.0, delta=1e-9)
        self.assertEqual(norms[3], 0.0)
        self.assertAlmostEqual(norms[4], 1.0, delta=1e-9)

    def test_empty_corpus(self) -> None:
        result = vectorize([], min_df=2)
        self.assertEqual(result.matrix.shape, (0, 0))
        self.assertEqual(result.vocabulary, [])

    def test_empty_vocabulary_after_filter(self) -> None:
        result = vectorize([["a"], ["b"], ["c"]], min_df=2)
        self.assertEqual(result.matrix.shape, (3, 0))
        self.assertEqual(result.vocab_size, 0)
        self.assertEqual(top_keywords(result, 10), [])

    def test_corpus_stats(self) -> None:
        result = vectorize(make_corpus(), min_df=2)
        stats = corpus_stats(result, total_tokens=8)
        self.assertEqual(stats.total_documents, 3)
        self.assertEqual(stats.vocabulary_size, 3)
        self.assertAlmostEqual(stats.avg_tokens_per_doc, 8 / 3)
        self.assertAlmostEqual(stats.sparsity, 1.0 - 6 / 9)

        empty = corpus_stats(vectorize([], min_df=1), total_tokens=0)
        self.assertEqual(empty.sparsity, 1.0)
        self.assertEqual(empty.avg_tokens_per_doc, 0.0)


class KeywordTests(unittest.TestCase):
    def test_global_top_keywords(self) -> None:
        corpus = [["vpn", "vpn", "wifi"], ["vpn", "wifi"], ["vpn", "mail"], ["mail"]]
        result = vectorize(corpus, min_df=1)
        keywords = top_keywords(result, 2)
        self.assertEqual(len(keywords), 2)
        self.assertEqual(keywords[0].word, "vpn")
        self.assertEqual(keywords[0].doc_frequency, 3)
        self.assertGreaterEqual(keywords[0].score, keywords[1].score)

        scores = np.asarray(result.matrix.sum(axis=0)).ravel()
        self.assertAlmostEqual(keywords[0].score, scores[result.vocab_index["vpn"]])

    def test_ties_follow_vocabulary_order(self) -> None:
        result = vectorize([["beta", "alpha"], ["alpha", "beta"]], min_df=1)
        self.assertEqual([kw.word for kw in top_keywords(result, 5)], ["alpha", "beta"])

    def test_subset_keywords(self) -> None:
        corpus = [["vpn", "wifi"], ["vpn", "wifi"], ["mail", "outlook"], ["mail", "outlook"]]
        result = vectorize(corpus, min_df=1)
        keywords = top_keywords_for_subset(result, [2, 3, 99], 10)
        self.assertEqual({kw.word for kw in keywords}, {"mail", "outlook"})
        self.assertTrue(all(kw.doc_frequency == 2 for kw in keywords))
        self.assertEqual(top_keywords_for_subset(result, [], 10), [])
        self.assertEqual(top_keywords_for_subset(result, [0], 0), [])

    def test_term_to_docs(self) -> None:
        result = vectorize(make_corpus(), min_df=2)
        docs = term_to_docs(result)
        self.assertEqual(docs[result.vocab_index["hello"]], [0, 1])
        self.assertEqual(docs[result.vocab_index["rust"]], [1, 2])
        self.assertEqual(docs[result.vocab_index["world"]], [0, 2])

    def test_cooccurrences(self) -> None:
        corpus = [["vpn", "wifi"], ["vpn", "wifi"], ["vpn", "mail"], ["mail"]]
        result = vectorize(corpus, min_df=1)
        nodes, edges = cooccurrences(result, top_n_nodes=3, max_edges=10)
        self.assertEqual(len(nodes), 3)
        self.assertEqual(nodes[0], result.vocab_index["vpn"])
        pairs = {(result.vocabulary[e.term_a], result.vocabulary[e.term_b]): e.weight for e in edges}
        self.assertEqual(pairs[("vpn", "wifi")], 2)
        self.assertEqual(pairs[("mail", "vpn")], 1)
        self.assertNotIn(("mail", "wifi"), pairs)
        self.assertEqual(edges[0].weight, 2)

        _, limited = cooccurrences(result, top_n_nodes=3, max_edges=1)
        self.assertEqual(len(limited), 1)


if __name__ == "__main__":
    unittest.main()
