"""Tests for discounted expected (residual) lifetime."""

from __future__ import annotations

import numpy as np
import pytest

from sbg_retention.core.errors import InvalidArgumentError
from sbg_retention.core.probability import survival_probability_table
from sbg_retention.core.value import (
    discounted_expected_lifetime,
    discounted_expected_lifetime_closed_form,
    discounted_expected_residual_lifetime,
    discounted_expected_residual_lifetime_closed_form,
)

ALPHA = 0.6677
BETA = 3.8025


def test_del_for_paper_parameters() -> None:
    value = discounted_expected_lifetime(ALPHA, BETA, discount_rate=0.1)

    assert value == pytest.approx(5.9206, abs=1e-3)


def test_derl_for_paper_parameters() -> None:
    value = discounted_expected_residual_lifetime(ALPHA, BETA, renewal_count=4, discount_rate=0.1)

    assert value == pytest.approx(6.8933, abs=1e-3)


def test_del_without_discount_is_one_plus_survival_sum() -> None:
    survival = survival_probability_table(2.0, 5.0, 20)
    value = discounted_expected_lifetime(2.0, 5.0, discount_rate=0.0, horizon_periods=20)

    assert value == pytest.approx(1.0 + float(np.sum(survival)))


def test_derl_matches_explicit_sum() -> None:
    survival = survival_probability_table(1.2, 2.4, 30)
    renewal_count = 3
    discount_rate = 0.05
    expected = sum(
        survival[k - 1] / survival[renewal_count - 1] / (1.0 + discount_rate) ** (k - renewal_count - 1)
        for k in range(renewal_count + 1, 31)
    )

    value = discounted_expected_residual_lifetime(
        1.2,
        2.4,
        renewal_count=renewal_count,
        discount_rate=discount_rate,
        horizon_periods=30,
    )
    assert value == pytest.approx(expected, rel=1e-12)


def test_longer_horizon_increases_del() -> None:
    short = discounted_expected_lifetime(ALPHA, BETA, discount_rate=0.1, horizon_periods=20)
    default = discounted_expected_lifetime(ALPHA, BETA, discount_rate=0.1)
    long = discounted_expected_lifetime(ALPHA, BETA, discount_rate=0.1, horizon_periods=200)

    assert short < default < long


def test_closed_forms_bound_truncated_sums() -> None:
    del_truncated = discounted_expected_lifetime(ALPHA, BETA, discount_rate=0.1)
    del_exact = discounted_expected_lifetime_closed_form(ALPHA, BETA, discount_rate=0.1)
    derl_truncated = discounted_expected_residual_lifetime(
        ALPHA, BETA, renewal_count=4, discount_rate=0.1
    )
    derl_exact = discounted_expected_residual_lifetime_closed_form(
        ALPHA, BETA, renewal_count=4, discount_rate=0.1
    )

    assert del_truncated < del_exact < del_truncated + 0.05
    assert derl_truncated < derl_exact < derl_truncated + 0.05


def test_closed_form_matches_long_truncation() -> None:
    exact = discounted_expected_residual_lifetime_closed_form(2.0, 3.0, renewal_count=2, discount_rate=0.2)
    truncated = discounted_expected_residual_lifetime(
        2.0, 3.0, renewal_count=2, discount_rate=0.2, horizon_periods=400
    )

    assert truncated == pytest.approx(exact, rel=1e-9)


def test_derl_rejects_single_renewal() -> None:
    with pytest.raises(InvalidArgumentError):
        discounted_expected_residual_lifetime(ALPHA, BETA, renewal_count=1, discount_rate=0.1)
    with pytest.raises(InvalidArgumentError):
        discounted_expected_residual_lifetime_closed_form(ALPHA, BETA, renewal_count=1)


def test_derl_rejects_horizon_before_renewal() -> None:
    with pytest.raises(InvalidArgumentError):
        discounted_expected_residual_lifetime(ALPHA, BETA, renewal_count=10, horizon_periods=10)


@pytest.mark.parametrize("discount_rate", [-0.01, 1.0, float("nan")])
def test_discount_rate_outside_unit_interval_raises(discount_rate: float) -> None:
    with pytest.raises(InvalidArgumentError):
        discounted_expected_lifetime(ALPHA, BETA, discount_rate=discount_rate)


def test_closed_form_requires_positive_discount() -> None:
    with pytest.raises(InvalidArgumentError):
        discounted_expected_lifetime_closed_form(ALPHA, BETA, discount_rate=0.0)


def test_invalid_shape_raises() -> None:
    with pytest.raises(InvalidArgumentError):
        discounted_expected_lifetime(-1.0, BETA)
