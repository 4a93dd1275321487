"""Tests for the sBG negative log-likelihood."""

from __future__ import annotations

import math

import numpy as np
import pytest

from sbg_retention.core.errors import InvalidArgumentError, ShapeMismatchError
from sbg_retention.core.likelihood import (
    BETA_FUNCTION,
    beta_function_negative_log_likelihood,
    build_objective,
    negative_log_likelihood,
)
from sbg_retention.core.types import CohortObservations

PAPER_ACTIVE = (869, 743, 653, 593, 551, 517, 491)
PAPER_LOST = (131, 126, 90, 60, 42, 34, 26)


def test_negative_log_likelihood_at_published_optimum() -> None:
    nll = negative_log_likelihood(0.668, 3.806, PAPER_ACTIVE, PAPER_LOST)

    assert nll == pytest.approx(1611.16, abs=0.02)


def test_negative_log_likelihood_matches_direct_formula() -> None:
    active = [80, 60]
    lost = [20, 20]
    alpha, beta = 1.0, 1.0
    # P(1) = 1/2, P(2) = 1/6, S(2) = 1/3.
    expected = -(20 * math.log(0.5) + 20 * math.log(1.0 / 6.0) + 60 * math.log(1.0 / 3.0))

    assert negative_log_likelihood(alpha, beta, active, lost) == pytest.approx(expected)


@pytest.mark.parametrize("alpha,beta", [(0.668, 3.806), (1.0, 1.0), (0.2, 12.0), (7.5, 0.4)])
def test_beta_function_form_agrees_with_recursive_form(alpha: float, beta: float) -> None:
    recursive = negative_log_likelihood(alpha, beta, PAPER_ACTIVE, PAPER_LOST)
    via_beta = beta_function_negative_log_likelihood(alpha, beta, PAPER_ACTIVE, PAPER_LOST)

    assert via_beta == pytest.approx(recursive, rel=1e-9)


def test_mismatched_lengths_raise_shape_mismatch() -> None:
    with pytest.raises(ShapeMismatchError):
        negative_log_likelihood(1.0, 1.0, [869, 743, 653], [131, 126])
    with pytest.raises(ShapeMismatchError):
        beta_function_negative_log_likelihood(1.0, 1.0, [869], [131, 126])


def test_shape_mismatch_is_a_value_error() -> None:
    with pytest.raises(ValueError, match="different lengths: 2 and 1"):
        negative_log_likelihood(1.0, 1.0, [1, 2], [3])


def test_empty_series_raise_invalid_argument() -> None:
    with pytest.raises(InvalidArgumentError):
        negative_log_likelihood(1.0, 1.0, [], [])


@pytest.mark.parametrize(
    "alpha,beta",
    [(0.0, 1.0), (-0.5, 2.0), (1.0, -1e-3), (float("nan"), 1.0), (1.0, float("inf"))],
)
def test_domain_errors_become_positive_infinity(alpha: float, beta: float) -> None:
    assert negative_log_likelihood(alpha, beta, PAPER_ACTIVE, PAPER_LOST) == math.inf
    assert beta_function_negative_log_likelihood(alpha, beta, PAPER_ACTIVE, PAPER_LOST) == math.inf


def test_underflowing_probabilities_become_positive_infinity() -> None:
    assert negative_log_likelihood(1e200, 1.0, PAPER_ACTIVE, PAPER_LOST) == math.inf


def test_build_objective_closure_matches_direct_call(paper_cohort: CohortObservations) -> None:
    objective = build_objective(paper_cohort)
    theta = np.array([0.9, 2.5])

    assert objective(theta) == negative_log_likelihood(0.9, 2.5, PAPER_ACTIVE, PAPER_LOST)
    assert objective(np.array([-1.0, 2.5])) == math.inf


def test_build_objective_beta_function_variant(paper_cohort: CohortObservations) -> None:
    objective = build_objective(paper_cohort, likelihood=BETA_FUNCTION)

    assert objective(np.array([0.9, 2.5])) == pytest.approx(
        negative_log_likelihood(0.9, 2.5, PAPER_ACTIVE, PAPER_LOST), rel=1e-9
    )


def test_build_objective_rejects_unknown_likelihood(paper_cohort: CohortObservations) -> None:
    with pytest.raises(ValueError, match="Unsupported likelihood"):
        build_objective(paper_cohort, likelihood="weibull")
