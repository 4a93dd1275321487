"""Churn, survival and retention probabilities of the shifted-beta-geometric model.

Equations follow Fader & Hardie (2007), "How to project customer retention":

    P(T=1) = alpha / (alpha + beta)
    P(T=t) = P(T=t-1) * (beta + t - 2) / (alpha + beta + t - 1)
    S(1)   = 1 - P(T=1)
    S(t)   = S(t-1) - P(T=t)
    r(t)   = (beta + t - 1) / (alpha + beta + t - 1)

Every public function accepts either a scalar period (returning ``float``) or
an ordered sequence of periods (returning a 1-D ``numpy.ndarray`` of the same
length and order). Tables are built bottom-up in one pass, so there is no
recursion depth limit on the period.
"""

from __future__ import annotations

import numpy as np

from sbg_retention.core.errors import InvalidArgumentError
from sbg_retention.core.params import validate_shape
from sbg_retention.core.types import PeriodArg


def churn_probability_table(alpha: float, beta: float, n_periods: int) -> np.ndarray:
    """Return P(T=t) for t = 1..n_periods."""
    validate_shape(alpha, beta)
    _validate_n_periods(n_periods)
    steps = np.arange(1, n_periods, dtype=np.float64)
    ratios = (beta + steps - 1.0) / (alpha + beta + steps)
    first = alpha / (alpha + beta)
    return first * np.concatenate(([1.0], np.cumprod(ratios)))


def survival_probability_table(alpha: float, beta: float, n_periods: int) -> np.ndarray:
    """Return S(t) for t = 1..n_periods."""
    churn = churn_probability_table(alpha, beta, n_periods)
    # S(t) = S(t-1) - P(t), seeded with S(0) = 1.
    return np.subtract.accumulate(np.concatenate(([1.0], churn)))[1:]


def churn_probability(alpha: float, beta: float, period: PeriodArg) -> float | np.ndarray:
    """Probability of churning exactly at ``period``."""
    periods, scalar = _resolve_periods(period)
    validate_shape(alpha, beta)
    if periods.size == 0:
        return np.empty(0, dtype=np.float64)
    table = churn_probability_table(alpha, beta, int(periods.max()))
    return _gather(table, periods, scalar)


def survival_probability(alpha: float, beta: float, period: PeriodArg) -> float | np.ndarray:
    """Probability of still being active at the end of ``period``."""
    periods, scalar = _resolve_periods(period)
    validate_shape(alpha, beta)
    if periods.size == 0:
        return np.empty(0, dtype=np.float64)
    table = survival_probability_table(alpha, beta, int(periods.max()))
    return _gather(table, periods, scalar)


def retention_rate(alpha: float, beta: float, period: PeriodArg) -> float | np.ndarray:
    """Probability of surviving ``period`` given survival through ``period - 1``."""
    periods, scalar = _resolve_periods(period)
    validate_shape(alpha, beta)
    t = periods.astype(np.float64)
    rates = (beta + t - 1.0) / (alpha + beta + t - 1.0)
    if scalar:
        return float(rates[0])
    return rates


def _resolve_periods(period: PeriodArg) -> tuple[np.ndarray, bool]:
    """Normalize a scalar or sequence period argument to an int64 vector."""
    raw = np.asarray(period)
    scalar = raw.ndim == 0
    flat = np.atleast_1d(raw)
    if flat.ndim != 1:
        raise InvalidArgumentError("period must be a scalar or a 1-D sequence.")
    if flat.size == 0:
        return np.empty(0, dtype=np.int64), scalar
    if flat.dtype == np.bool_ or not np.issubdtype(flat.dtype, np.number):
        raise InvalidArgumentError(f"period must be numeric, got dtype {flat.dtype}.")

    as_float = flat.astype(np.float64)
    if not np.all(np.isfinite(as_float)) or np.any(as_float != np.round(as_float)):
        raise InvalidArgumentError("period values must be whole numbers.")
    if np.any(as_float < 1):
        raise InvalidArgumentError("period values must be >= 1.")
    return as_float.astype(np.int64), scalar


def _gather(table: np.ndarray, periods: np.ndarray, scalar: bool) -> float | np.ndarray:
    values = table[periods - 1]
    if scalar:
        return float(values[0])
    return values


def _validate_n_periods(n_periods: int) -> None:
    if int(n_periods) != n_periods or n_periods < 1:
        raise InvalidArgumentError(f"n_periods must be a positive integer, got {n_periods!r}.")
