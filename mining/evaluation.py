from __future__ import annotations

import numpy as np
from scipy.signal import argrelextrema


def silhouette_score(data: np.ndarray, labels: np.ndarray) -> float:
    """Mean silhouette over all points, using Euclidean distance.

    A point alone in its cluster has ``a = 0``. Returns 0.0 when there is
    at most one point or one non-empty cluster.
    """
    n = len(labels)
    if n <= 1 or len(set(labels.tolist())) <= 1:
        return 0.0

    dist = _pairwise_euclidean(data)
    unique = sorted(set(labels.tolist()))
    members = {c: np.where(labels == c)[0] for c in unique}
    sil = np.zeros(n, dtype=float)

    for i in range(n):
        own = labels[i]
        own_idx = members[own]
        if len(own_idx) <= 1:
            a = 0.0
        else:
            a = float(np.sum(dist[i, own_idx]) / (len(own_idx) - 1))

        b = float("inf")
        for other in unique:
            if other == own:
                continue
            b = min(b, float(np.mean(dist[i, members[other]])))

        if not np.isfinite(b) or max(a, b) == 0.0:
            sil[i] = 0.0
        else:
            sil[i] = (b - a) / max(a, b)
    return float(np.mean(sil))


def find_knee(x: list[float], y: list[float], sensitivity: float = 1.0) -> float | None:
    """Kneedle elbow of a convex, decreasing curve.

    Returns the x value of the first knee, or None when the curve has none.
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    if len(x_arr) < 3 or np.ptp(x_arr) == 0 or np.ptp(y_arr) == 0:
        return None

    x_norm = (x_arr - x_arr.min()) / np.ptp(x_arr)
    y_norm = (y_arr - y_arr.min()) / np.ptp(y_arr)
    # flip the elbow into a knee
    y_norm = y_norm.max() - y_norm
    diff = y_norm - x_norm

    maxima = argrelextrema(diff, np.greater_equal)[0]
    minima = argrelextrema(diff, np.less_equal)[0]
    if not maxima.size:
        return None
    thresholds = diff[maxima] - sensitivity * abs(float(np.diff(x_norm).mean()))

    threshold = 0.0
    threshold_index = int(maxima[0])
    maxima_seen = 0
    for i in range(int(maxima[0]), len(diff) - 1):
        if i in maxima:
            threshold = float(thresholds[maxima_seen])
            threshold_index = i
            maxima_seen += 1
        if i in minima:
            threshold = 0.0
        if diff[i + 1] < threshold:
            return float(x_arr[threshold_index])
    return None


def find_optimal_k(inertias: list[tuple[int, float]], k_min: int, k_max: int) -> int:
    """Pick k at the elbow of the inertia curve, else the middle of the range."""
    if len(inertias) <= 1:
        return inertias[0][0] if inertias else k_min

    knee = find_knee([k for k, _ in inertias], [v for _, v in inertias])
    if knee is not None:
        k = int(round(knee))
        if k_min <= k <= k_max:
            return k
    return k_min + (k_max - k_min) // 2


def _pairwise_euclidean(data: np.ndarray) -> np.ndarray:
    sq = np.sum(data * data, axis=1)
    d2 = sq[:, None] + sq[None, :] - 2.0 * (data @ data.T)
    dist = np.sqrt(np.clip(d2, 0.0, None))
    np.fill_diagonal(dist, 0.0)
    return dist
