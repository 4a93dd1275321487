"""Tabular retention projections for plotting and reporting callers."""

from __future__ import annotations

import numpy as np
import pandas as pd

from sbg_retention.core.errors import InvalidArgumentError
from sbg_retention.core.probability import (
    churn_probability_table,
    retention_rate,
    survival_probability,
    survival_probability_table,
)
from sbg_retention.core.types import CohortObservations, PeriodArg

PROJECTION_COLUMNS = ("churn_probability", "survival_probability", "retention_rate")


def projection_table(alpha: float, beta: float, n_periods: int) -> pd.DataFrame:
    """Project churn, survival and retention for periods 1..n_periods."""
    churn = churn_probability_table(alpha, beta, n_periods)
    survival = survival_probability_table(alpha, beta, n_periods)
    periods = np.arange(1, n_periods + 1)
    return pd.DataFrame(
        {
            "churn_probability": churn,
            "survival_probability": survival,
            "retention_rate": retention_rate(alpha, beta, periods),
        },
        index=pd.Index(periods, name="period"),
    )


def expected_active_customers(
    alpha: float,
    beta: float,
    initial_size: float,
    period: PeriodArg,
) -> float | np.ndarray:
    """Expected customers still active from a cohort of ``initial_size``."""
    if initial_size < 0:
        raise InvalidArgumentError("initial_size must be non-negative.")
    return initial_size * survival_probability(alpha, beta, period)


def compare_to_observed(
    alpha: float,
    beta: float,
    observations: CohortObservations,
) -> pd.DataFrame:
    """Side-by-side observed and fitted survival for the observed periods."""
    observations.validate()
    table = projection_table(alpha, beta, observations.n_periods)
    observed = np.asarray(observations.observed_survival(), dtype=np.float64)
    return pd.DataFrame(
        {
            "active": np.asarray(observations.active, dtype=np.int64),
            "lost": np.asarray(observations.lost, dtype=np.int64),
            "observed_survival": observed,
            "fitted_survival": table["survival_probability"].to_numpy(),
            "survival_error": table["survival_probability"].to_numpy() - observed,
        },
        index=table.index,
    )
