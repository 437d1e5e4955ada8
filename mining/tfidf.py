from __future__ import annotations

import logging
from collections import Counter

import numpy as np
from scipy import sparse

from .types import CorpusStats, TfIdfResult

logger = logging.getLogger(__name__)


def vectorize(corpus: list[list[str]], min_df: int = 2) -> TfIdfResult:
    """Build the document x term TF-IDF matrix of a tokenized corpus.

    Weights use sublinear term frequency ``1 + ln(count)`` and smoothed
    IDF ``ln(1 + N / (1 + df))``; each non-empty row is L2-normalized.
    Terms seen in fewer than ``min_df`` documents are dropped and the
    remaining vocabulary is sorted so column indices are reproducible.
    """
    n_docs = len(corpus)
    if n_docs == 0:
        return _empty_result(0)

    df: Counter[str] = Counter()
    for tokens in corpus:
        df.update(set(tokens))

    vocabulary = sorted(term for term, freq in df.items() if freq >= min_df)
    if not vocabulary:
        logger.debug("No term reaches min_df=%d over %d documents", min_df, n_docs)
        return _empty_result(n_docs)

    vocab_index = {term: i for i, term in enumerate(vocabulary)}
    doc_freq = np.array([df[term] for term in vocabulary], dtype=int)
    idf = np.log1p(n_docs / (1.0 + doc_freq))

    rows: list[int] = []
    cols: list[int] = []
    data: list[float] = []
    for doc_idx, tokens in enumerate(corpus):
        tf = Counter(t for t in tokens if t in vocab_index)
        if not tf:
            continue
        term_idx = np.array([vocab_index[t] for t in tf], dtype=int)
        counts = np.array(list(tf.values()), dtype=float)
        weights = (1.0 + np.log(counts)) * idf[term_idx]
        norm = np.linalg.norm(weights)
        if norm > 0:
            weights = weights / norm
        rows.extend([doc_idx] * len(term_idx))
        cols.extend(term_idx.tolist())
        data.extend(weights.tolist())

    matrix = sparse.csr_matrix(
        (data, (rows, cols)),
        shape=(n_docs, len(vocabulary)),
        dtype=float,
    )
    logger.debug(
        "TF-IDF matrix: %d documents x %d terms (%d non-zero)",
        n_docs,
        len(vocabulary),
        matrix.nnz,
    )
    return TfIdfResult(
        matrix=matrix,
        vocabulary=vocabulary,
        vocab_index=vocab_index,
        idf=idf,
        doc_freq=doc_freq,
    )


def corpus_stats(result: TfIdfResult, total_tokens: int) -> CorpusStats:
    total_cells = result.doc_count * result.vocab_size
    sparsity = 1.0 - result.matrix.nnz / total_cells if total_cells > 0 else 1.0
    avg_tokens = total_tokens / result.doc_count if result.doc_count > 0 else 0.0
    return CorpusStats(
        total_documents=result.doc_count,
        total_tokens=total_tokens,
        vocabulary_size=result.vocab_size,
        avg_tokens_per_doc=avg_tokens,
        sparsity=sparsity,
    )


def term_index(result: TfIdfResult, term: str) -> int | None:
    return result.vocab_index.get(term)


def row_norms(result: TfIdfResult) -> np.ndarray:
    squared = result.matrix.multiply(result.matrix).sum(axis=1)
    return np.sqrt(np.asarray(squared, dtype=float).ravel())


def _empty_result(n_docs: int) -> TfIdfResult:
    return TfIdfResult(
        matrix=sparse.csr_matrix((n_docs, 0), dtype=float),
        vocabulary=[],
        vocab_index={},
        idf=np.zeros(0, dtype=float),
        doc_freq=np.zeros(0, dtype=int),
    )
