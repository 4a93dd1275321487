"""Discounted expected lifetime (DEL) and residual lifetime (DERL).

The truncated sums follow Fader & Hardie (2010), "Customer-Base Valuation in a
Contractual Setting". The infinite-horizon closed forms use the Gaussian
hypergeometric function:

    DEL  = 2F1(1, beta; alpha + beta; 1 / (1 + d))
    DERL = (beta + n) / (alpha + beta + n) * 2F1(1, beta + n + 1; alpha + beta + n + 1; 1 / (1 + d))
"""

from __future__ import annotations

import math

import numpy as np
from scipy.special import hyp2f1

from sbg_retention.core.errors import InvalidArgumentError
from sbg_retention.core.params import validate_shape
from sbg_retention.core.probability import survival_probability_table

DEFAULT_DISCOUNT_RATE = 0.025
DEFAULT_HORIZON_PERIODS = 70
MIN_RENEWAL_COUNT = 2


def discounted_expected_lifetime(
    alpha: float,
    beta: float,
    discount_rate: float = DEFAULT_DISCOUNT_RATE,
    horizon_periods: int = DEFAULT_HORIZON_PERIODS,
) -> float:
    """Sum of discounted survival probabilities for a new customer.

    Computes ``sum_{k=0..H} S(k) / (1 + d)^k`` with ``S(0) = 1``. The infinite
    series is truncated at ``horizon_periods``.
    """
    validate_shape(alpha, beta)
    _validate_discount_rate(discount_rate)
    _validate_horizon(horizon_periods, minimum=1)

    survival = np.concatenate(([1.0], survival_probability_table(alpha, beta, horizon_periods)))
    discount = _discount_factors(discount_rate, horizon_periods + 1)
    return float(np.dot(survival, discount))


def discounted_expected_residual_lifetime(
    alpha: float,
    beta: float,
    renewal_count: int = MIN_RENEWAL_COUNT,
    discount_rate: float = DEFAULT_DISCOUNT_RATE,
    horizon_periods: int = DEFAULT_HORIZON_PERIODS,
) -> float:
    """Discounted residual lifetime of a customer who survived ``renewal_count`` periods.

    Computes ``sum_{k=n+1..H} S(k) / S(n) * (1 + d)^-(k - n - 1)``, discounted
    back to the renewal point.

    Raises:
        InvalidArgumentError: If ``renewal_count < 2`` or the horizon does not
            extend past the renewal point.
    """
    if int(renewal_count) != renewal_count or renewal_count < MIN_RENEWAL_COUNT:
        raise InvalidArgumentError(
            f"renewal_count must be an integer >= {MIN_RENEWAL_COUNT}, got {renewal_count!r}."
        )
    renewal_count = int(renewal_count)
    validate_shape(alpha, beta)
    _validate_discount_rate(discount_rate)
    _validate_horizon(horizon_periods, minimum=renewal_count + 1)

    survival = survival_probability_table(alpha, beta, horizon_periods)
    conditional = survival[renewal_count:] / survival[renewal_count - 1]
    discount = _discount_factors(discount_rate, horizon_periods - renewal_count)
    return float(np.dot(conditional, discount))


def discounted_expected_lifetime_closed_form(
    alpha: float,
    beta: float,
    discount_rate: float = DEFAULT_DISCOUNT_RATE,
) -> float:
    """Infinite-horizon DEL."""
    validate_shape(alpha, beta)
    _validate_discount_rate(discount_rate, allow_zero=False)
    return float(hyp2f1(1.0, beta, alpha + beta, 1.0 / (1.0 + discount_rate)))


def discounted_expected_residual_lifetime_closed_form(
    alpha: float,
    beta: float,
    renewal_count: int = MIN_RENEWAL_COUNT,
    discount_rate: float = DEFAULT_DISCOUNT_RATE,
) -> float:
    """Infinite-horizon DERL."""
    if int(renewal_count) != renewal_count or renewal_count < MIN_RENEWAL_COUNT:
        raise InvalidArgumentError(
            f"renewal_count must be an integer >= {MIN_RENEWAL_COUNT}, got {renewal_count!r}."
        )
    validate_shape(alpha, beta)
    _validate_discount_rate(discount_rate, allow_zero=False)
    n = float(renewal_count)
    rate = (beta + n) / (alpha + beta + n)
    return float(
        rate * hyp2f1(1.0, beta + n + 1.0, alpha + beta + n + 1.0, 1.0 / (1.0 + discount_rate))
    )


def _discount_factors(discount_rate: float, n_terms: int) -> np.ndarray:
    return 1.0 / np.power(1.0 + discount_rate, np.arange(n_terms, dtype=np.float64))


def _validate_discount_rate(discount_rate: float, allow_zero: bool = True) -> None:
    lower_ok = discount_rate >= 0.0 if allow_zero else discount_rate > 0.0
    if not math.isfinite(discount_rate) or not lower_ok or discount_rate >= 1.0:
        bound = "[0, 1)" if allow_zero else "(0, 1)"
        raise InvalidArgumentError(f"discount_rate must be in {bound}, got {discount_rate!r}.")


def _validate_horizon(horizon_periods: int, minimum: int) -> None:
    if int(horizon_periods) != horizon_periods or horizon_periods < minimum:
        raise InvalidArgumentError(
            f"horizon_periods must be an integer >= {minimum}, got {horizon_periods!r}."
        )
