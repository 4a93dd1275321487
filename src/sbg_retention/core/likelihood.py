"""Negative log-likelihood of observed cohort counts under the sBG model.

For a cohort observed over periods 1..T with ``lost[t]`` customers churning in
period t and ``active[T]`` still active at the end, the log-likelihood is
(equation B3 in Fader & Hardie 2007):

    LL(alpha, beta) = sum_t lost[t] * ln P(T=t) + active[T] * ln S(T)

The optimizer minimizes, so the functions below return ``-LL``. Points outside
the model's domain (alpha or beta <= 0, probabilities that underflow to zero)
evaluate to ``+inf`` instead of raising, which lets an unconstrained search
reject them and keep going.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import logging
import math

import numpy as np
from scipy.special import betaln

from sbg_retention.core.errors import InvalidArgumentError, ShapeMismatchError
from sbg_retention.core.probability import (
    churn_probability_table,
    survival_probability_table,
)
from sbg_retention.core.types import CohortObservations

logger = logging.getLogger(__name__)

RECURSIVE = "recursive"
BETA_FUNCTION = "beta_function"
SUPPORTED_LIKELIHOODS = (RECURSIVE, BETA_FUNCTION)


def negative_log_likelihood(
    alpha: float,
    beta: float,
    active_counts: Sequence[float],
    lost_counts: Sequence[float],
) -> float:
    """Evaluate ``-LL`` using the recursive churn/survival probabilities.

    Raises:
        ShapeMismatchError: If the count series differ in length.
        InvalidArgumentError: If the series are empty.
    """
    active, lost = _count_arrays(active_counts, lost_counts)
    return _recursive_nll(float(alpha), float(beta), active, lost)


def beta_function_negative_log_likelihood(
    alpha: float,
    beta: float,
    active_counts: Sequence[float],
    lost_counts: Sequence[float],
) -> float:
    """Evaluate ``-LL`` through Beta functions.

    Uses P(T=t) = B(alpha+1, beta+t-1) / B(alpha, beta) and
    S(T) = B(alpha, beta+T) / B(alpha, beta), computed in log space. This is
    the same likelihood as :func:`negative_log_likelihood` but does not
    underflow for long series.
    """
    active, lost = _count_arrays(active_counts, lost_counts)
    return _beta_function_nll(float(alpha), float(beta), active, lost)


def build_objective(
    observations: CohortObservations,
    likelihood: str = RECURSIVE,
) -> Callable[[np.ndarray], float]:
    """Return ``f(theta) -> -LL`` with ``theta = (alpha, beta)``.

    The closure captures only the validated observation arrays.
    """
    if likelihood not in _NLL_FUNCTIONS:
        raise ValueError(
            f"Unsupported likelihood={likelihood!r}. "
            f"Expected one of {SUPPORTED_LIKELIHOODS}."
        )
    observations.validate()
    nll = _NLL_FUNCTIONS[likelihood]
    active = np.asarray(observations.active, dtype=np.float64)
    lost = np.asarray(observations.lost, dtype=np.float64)

    def objective(theta: np.ndarray) -> float:
        return nll(float(theta[0]), float(theta[1]), active, lost)

    return objective


def _recursive_nll(alpha: float, beta: float, active: np.ndarray, lost: np.ndarray) -> float:
    if not _in_domain(alpha, beta):
        return _penalty(alpha, beta, "non-positive shape parameter")

    n_periods = len(lost)
    with np.errstate(all="ignore"):
        churn = churn_probability_table(alpha, beta, n_periods)
        final_survival = float(survival_probability_table(alpha, beta, n_periods)[-1])
        if (
            not np.all(np.isfinite(churn))
            or np.any(churn <= 0.0)
            or not math.isfinite(final_survival)
            or final_survival <= 0.0
        ):
            return _penalty(alpha, beta, "non-positive probability")
        log_likelihood = float(np.dot(lost, np.log(churn))) + float(
            active[-1] * math.log(final_survival)
        )

    if not math.isfinite(log_likelihood):
        return _penalty(alpha, beta, "non-finite log-likelihood")
    return -log_likelihood


def _beta_function_nll(
    alpha: float,
    beta: float,
    active: np.ndarray,
    lost: np.ndarray,
) -> float:
    if not _in_domain(alpha, beta):
        return _penalty(alpha, beta, "non-positive shape parameter")

    n_periods = len(lost)
    periods = np.arange(1, n_periods + 1, dtype=np.float64)
    with np.errstate(all="ignore"):
        log_norm = betaln(alpha, beta)
        log_churn = betaln(alpha + 1.0, beta + periods - 1.0) - log_norm
        log_survival = betaln(alpha, beta + n_periods) - log_norm
        log_likelihood = float(np.dot(lost, log_churn)) + float(active[-1] * log_survival)

    if not math.isfinite(log_likelihood):
        return _penalty(alpha, beta, "non-finite log-likelihood")
    return -log_likelihood


_NLL_FUNCTIONS: dict[str, Callable[[float, float, np.ndarray, np.ndarray], float]] = {
    RECURSIVE: _recursive_nll,
    BETA_FUNCTION: _beta_function_nll,
}


def _in_domain(alpha: float, beta: float) -> bool:
    return math.isfinite(alpha) and math.isfinite(beta) and alpha > 0.0 and beta > 0.0


def _penalty(alpha: float, beta: float, reason: str) -> float:
    logger.debug("Penalised likelihood at alpha=%.6g, beta=%.6g (%s).", alpha, beta, reason)
    return math.inf


def _count_arrays(
    active_counts: Sequence[float],
    lost_counts: Sequence[float],
) -> tuple[np.ndarray, np.ndarray]:
    active = np.asarray(active_counts, dtype=np.float64).ravel()
    lost = np.asarray(lost_counts, dtype=np.float64).ravel()
    if active.shape != lost.shape:
        raise ShapeMismatchError(active.size, lost.size)
    if active.size == 0:
        raise InvalidArgumentError("At least one observed period is required.")
    return active, lost
