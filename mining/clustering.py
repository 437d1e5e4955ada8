from __future__ import annotations

import logging

import numpy as np
from scipy import sparse

from .errors import ClusteringFitError, EmptyInputError, InvalidParameterError
from .evaluation import find_optimal_k, silhouette_score
from .types import ClusterInfo, ClusteringResult

logger = logging.getLogger(__name__)

LABEL_TERMS = 5
TOLERANCE = 1e-4
N_INIT = 10


def cluster(
    matrix: sparse.spmatrix | np.ndarray,
    vocabulary: list[str],
    k_min: int = 2,
    k_max: int = 10,
    max_iter: int = 100,
    seed: int = 42,
) -> ClusteringResult:
    """Cluster documents with K-Means, choosing k on the inertia elbow.

    Every k in ``[k_min, k_max]`` (``k_max`` clamped to the document count)
    is fitted and its inertia recorded; the elbow of that curve gives the
    final k, falling back to the middle of the range.
    """
    data = _to_dense(matrix)
    n_docs = data.shape[0]
    if n_docs == 0 or data.shape[1] == 0:
        raise EmptyInputError("The TF-IDF matrix is empty", {"shape": tuple(data.shape)})
    if vocabulary and len(vocabulary) != data.shape[1]:
        raise InvalidParameterError(
            "Vocabulary size does not match the matrix width",
            {"vocabulary": len(vocabulary), "columns": int(data.shape[1])},
        )
    if k_min < 1 or k_max < 1:
        raise InvalidParameterError("Cluster counts must be positive", {"k_min": k_min, "k_max": k_max})
    if n_docs < k_min:
        raise InvalidParameterError(
            f"Too few documents ({n_docs}) for k_min={k_min} clusters",
            {"documents": n_docs, "k_min": k_min},
        )

    k_max = min(k_max, n_docs)
    k_min = min(k_min, k_max)

    inertias: list[tuple[int, float]] = []
    for k in range(k_min, k_max + 1):
        _, _, inertia = fit_kmeans(data, k, seed=seed, max_iter=max_iter)
        inertias.append((k, inertia))

    k_optimal = find_optimal_k(inertias, k_min, k_max)
    labels, centroids, _ = fit_kmeans(data, k_optimal, seed=seed, max_iter=max_iter)

    clusters = _build_clusters(k_optimal, labels, centroids, vocabulary)
    score = silhouette_score(data, labels)
    logger.info(
        "Clustered %d documents into k=%d (range %d-%d), silhouette=%.4f",
        n_docs,
        k_optimal,
        k_min,
        k_max,
        score,
    )
    return ClusteringResult(
        k_optimal=k_optimal,
        clusters=clusters,
        silhouette_score=score,
        inertias=inertias,
    )


def fit_kmeans(
    data: np.ndarray,
    n_clusters: int,
    seed: int = 42,
    max_iter: int = 100,
    n_init: int = N_INIT,
) -> tuple[np.ndarray, np.ndarray, float]:
    """Euclidean K-Means with k-means++ seeding; keeps the best of ``n_init`` runs.

    Returns (labels, centroids, inertia).
    """
    n_samples = data.shape[0]
    if n_clusters < 1 or n_clusters > n_samples:
        raise ClusteringFitError(n_clusters, f"needs between 1 and {n_samples} clusters")
    if not np.all(np.isfinite(data)):
        raise ClusteringFitError(n_clusters, "data contains non-finite values")

    rng = np.random.default_rng(seed)
    best: tuple[np.ndarray, np.ndarray, float] | None = None
    for _ in range(max(1, n_init)):
        run = _lloyd(data, _init_centroids(data, n_clusters, rng), max_iter)
        if best is None or run[2] < best[2]:
            best = run

    if best is None or not np.isfinite(best[2]):
        raise ClusteringFitError(n_clusters, "inertia is not finite")
    return best


def _lloyd(
    data: np.ndarray,
    centroids: np.ndarray,
    max_iter: int,
) -> tuple[np.ndarray, np.ndarray, float]:
    n_samples = data.shape[0]
    n_clusters = centroids.shape[0]
    for _ in range(max(1, max_iter)):
        dist = _squared_distances(data, centroids)
        labels = np.argmin(dist, axis=1)
        new_centroids = centroids.copy()
        for k in range(n_clusters):
            members = data[labels == k]
            if len(members) == 0:
                # re-seed an empty cluster on the worst-served point
                new_centroids[k] = data[np.argmax(dist[np.arange(n_samples), labels])]
            else:
                new_centroids[k] = members.mean(axis=0)
        shift = float(np.sum((new_centroids - centroids) ** 2))
        centroids = new_centroids
        if shift <= TOLERANCE:
            break

    dist = _squared_distances(data, centroids)
    labels = np.argmin(dist, axis=1)
    inertia = float(np.sum(dist[np.arange(n_samples), labels]))
    return labels, centroids, inertia


def _init_centroids(data: np.ndarray, n_clusters: int, rng: np.random.Generator) -> np.ndarray:
    n_samples = data.shape[0]
    centroids = np.empty((n_clusters, data.shape[1]), dtype=float)
    centroids[0] = data[rng.integers(n_samples)]
    closest = np.sum((data - centroids[0]) ** 2, axis=1)
    for k in range(1, n_clusters):
        total = float(closest.sum())
        if total <= 0.0:
            idx = int(rng.integers(n_samples))
        else:
            idx = int(rng.choice(n_samples, p=closest / total))
        centroids[k] = data[idx]
        closest = np.minimum(closest, np.sum((data - centroids[k]) ** 2, axis=1))
    return centroids


def _squared_distances(data: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    d2 = (
        np.sum(data * data, axis=1)[:, None]
        - 2.0 * (data @ centroids.T)
        + np.sum(centroids * centroids, axis=1)[None, :]
    )
    return np.clip(d2, 0.0, None)


def _build_clusters(
    k: int,
    labels: np.ndarray,
    centroids: np.ndarray,
    vocabulary: list[str],
) -> list[ClusterInfo]:
    clusters: list[ClusterInfo] = []
    for cluster_id in range(k):
        doc_indices = [int(i) for i in np.where(labels == cluster_id)[0]]
        top_terms: list[str] = []
        if vocabulary:
            centroid = centroids[cluster_id]
            order = np.argsort(-centroid, kind="stable")
            top_terms = [vocabulary[i] for i in order if centroid[i] > 0][:LABEL_TERMS]
        clusters.append(
            ClusterInfo(
                cluster_id=cluster_id,
                label=" ".join(top_terms),
                top_keywords=top_terms,
                doc_indices=doc_indices,
                size=len(doc_indices),
            )
        )
    return clusters


def _to_dense(matrix: sparse.spmatrix | np.ndarray) -> np.ndarray:
    if sparse.issparse(matrix):
        dense = matrix.toarray()
    else:
        dense = np.asarray(matrix, dtype=float)
    if dense.ndim != 2:
        dense = dense.reshape(len(dense), -1) if dense.size else np.zeros((0, 0), dtype=float)
    return dense.astype(float, copy=False)
