from __future__ import annotations

import numpy as np

from .types import CooccurrenceEdge, Keyword, TfIdfResult


def top_keywords(result: TfIdfResult, top_n: int) -> list[Keyword]:
    """Rank terms by their TF-IDF weight summed over the whole corpus."""
    if result.vocab_size == 0 or top_n <= 0:
        return []

    scores = _column_sums(result.matrix)
    order = _rank(scores)[:top_n]
    return [
        Keyword(
            word=result.vocabulary[i],
            score=float(scores[i]),
            doc_frequency=int(result.doc_freq[i]),
        )
        for i in order
    ]


def top_keywords_for_subset(
    result: TfIdfResult,
    doc_indices: list[int],
    top_n: int,
) -> list[Keyword]:
    """Rank terms over a subset of documents.

    Indices outside the corpus are ignored. ``doc_frequency`` counts the
    subset documents with a non-zero weight for the term, and terms with
    no weight in the subset are left out.
    """
    if result.vocab_size == 0 or top_n <= 0:
        return []
    valid = [i for i in doc_indices if 0 <= i < result.doc_count]
    if not valid:
        return []

    sub = result.matrix[valid]
    scores = _column_sums(sub)
    subset_df = np.asarray((sub > 0).sum(axis=0)).ravel()

    order = [i for i in _rank(scores) if scores[i] > 0][:top_n]
    return [
        Keyword(
            word=result.vocabulary[i],
            score=float(scores[i]),
            doc_frequency=int(subset_df[i]),
        )
        for i in order
    ]


def term_to_docs(result: TfIdfResult) -> list[list[int]]:
    """For every vocabulary term, the sorted indices of documents containing it."""
    csc = result.matrix.tocsc()
    docs: list[list[int]] = []
    for j in range(result.vocab_size):
        start, end = csc.indptr[j], csc.indptr[j + 1]
        rows = csc.indices[start:end][csc.data[start:end] > 0]
        docs.append(sorted(int(r) for r in rows))
    return docs


def cooccurrences(
    result: TfIdfResult,
    top_n_nodes: int = 80,
    max_edges: int = 200,
) -> tuple[list[int], list[CooccurrenceEdge]]:
    """Keyword co-occurrence network over the strongest terms.

    Nodes are the ``top_n_nodes`` global keywords (vocabulary indices, in
    rank order). Two nodes are linked by the number of documents in which
    both carry weight.
    """
    if result.vocab_size == 0 or top_n_nodes <= 0:
        return [], []

    scores = _column_sums(result.matrix)
    nodes = [int(i) for i in _rank(scores)[:top_n_nodes]]
    if max_edges <= 0 or len(nodes) < 2:
        return nodes, []

    by_index = sorted(nodes)
    presence = (result.matrix[:, by_index] > 0).astype(float)
    counts = (presence.T @ presence).toarray()

    edges: list[CooccurrenceEdge] = []
    for a in range(len(by_index)):
        for b in range(a + 1, len(by_index)):
            weight = int(round(counts[a, b]))
            if weight > 0:
                edges.append(CooccurrenceEdge(term_a=by_index[a], term_b=by_index[b], weight=weight))

    edges.sort(key=lambda e: (-e.weight, e.term_a, e.term_b))
    return nodes, edges[:max_edges]


def _column_sums(matrix) -> np.ndarray:
    return np.asarray(matrix.sum(axis=0), dtype=float).ravel()


def _rank(scores: np.ndarray) -> np.ndarray:
    # Stable sort: equal scores keep vocabulary (alphabetical) order.
    return np.argsort(-scores, kind="stable")
