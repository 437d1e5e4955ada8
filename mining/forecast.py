from __future__ import annotations

import logging
import math
from datetime import date, timedelta

import numpy as np

from .errors import InsufficientHistoryError, InvalidParameterError
from .types import ForecastPoint, PredictionOutput, TimeSeries

logger = logging.getLogger(__name__)

MIN_HISTORY = 90
Z_80 = 1.28
GRID = (0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9)


def forecast(series: TimeSeries, periods_ahead: int = 30, season_length: int = 7) -> PredictionOutput:
    """Project incoming volume with Holt's double exponential smoothing.

    Alpha and beta are grid-searched on one-step-ahead MAE. Forecasts and
    their 80% bounds are clamped at zero. ``season_length`` is accepted
    for call compatibility; no seasonal component is modelled.
    """
    y = np.asarray(series.values, dtype=float)
    n = len(y)
    if n < MIN_HISTORY:
        raise InsufficientHistoryError(MIN_HISTORY, n)
    if periods_ahead <= 0:
        raise InvalidParameterError("periods_ahead must be greater than 0", {"periods_ahead": periods_ahead})

    alpha, beta = optimize_parameters(y)
    levels, trends, fitted = holt_fit(y, alpha, beta)
    last_level, last_trend = float(levels[-1]), float(trends[-1])

    mae = compute_mae(y[1:].tolist(), fitted[1:].tolist())
    residual_std = _sample_std(y[1:] - fitted[1:])

    forecasts: list[ForecastPoint] = []
    for h in range(1, periods_ahead + 1):
        predicted = max(0.0, last_level + h * last_trend)
        margin = Z_80 * residual_std * math.sqrt(h)
        forecasts.append(
            ForecastPoint(
                period_label=future_label(series.period_labels, h),
                predicted_value=predicted,
                lower_bound=max(0.0, predicted - margin),
                upper_bound=max(0.0, predicted + margin),
            )
        )

    logger.info(
        "Holt forecast over %d points: alpha=%.1f beta=%.1f mae=%.3f",
        n,
        alpha,
        beta,
        mae,
    )
    return PredictionOutput(
        forecasts=forecasts,
        model_info=f"Holt-Winters DES (alpha={alpha:.3f}, beta={beta:.3f})",
        mae=mae,
        history_length=n,
    )


def holt_fit(y: np.ndarray, alpha: float, beta: float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return smoothed levels, trends and one-step-ahead fitted values."""
    n = len(y)
    levels = np.zeros(n, dtype=float)
    trends = np.zeros(n, dtype=float)
    fitted = np.zeros(n, dtype=float)
    if n == 0:
        return levels, trends, fitted

    levels[0] = y[0]
    trends[0] = y[1] - y[0] if n > 1 else 0.0
    fitted[0] = levels[0]
    for t in range(1, n):
        prev_level, prev_trend = levels[t - 1], trends[t - 1]
        fitted[t] = prev_level + prev_trend
        levels[t] = alpha * y[t] + (1.0 - alpha) * (prev_level + prev_trend)
        trends[t] = beta * (levels[t] - prev_level) + (1.0 - beta) * prev_trend
    return levels, trends, fitted


def optimize_parameters(y: np.ndarray) -> tuple[float, float]:
    best_mae = math.inf
    best = (0.3, 0.1)
    for alpha in GRID:
        for beta in GRID:
            _, _, fitted = holt_fit(y, alpha, beta)
            mae = compute_mae(y[1:].tolist(), fitted[1:].tolist())
            if mae < best_mae:
                best_mae = mae
                best = (alpha, beta)
    return best


def compute_mae(actual: list[float], predicted: list[float]) -> float:
    n = min(len(actual), len(predicted))
    if n == 0:
        return 0.0
    a = np.asarray(actual[:n], dtype=float)
    p = np.asarray(predicted[:n], dtype=float)
    return float(np.mean(np.abs(a - p)))


def future_label(labels: list[str], h: int) -> str:
    """Label of the h-th future period: the next ISO date, else ``T+h``."""
    if labels:
        try:
            last = date.fromisoformat(labels[-1][:10])
        except ValueError:
            pass
        else:
            return (last + timedelta(days=h)).isoformat()
    return f"T+{h}"


def _sample_std(values: np.ndarray) -> float:
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))
