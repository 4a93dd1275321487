"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from sbg_retention.core.types import CohortObservations


# Fader & Hardie (2007), Table 1: 1,000 customers acquired at period 0.
PAPER_ACTIVE = (869, 743, 653, 593, 551, 517, 491)
PAPER_LOST = (131, 126, 90, 60, 42, 34, 26)


@pytest.fixture
def paper_cohort() -> CohortObservations:
    return CohortObservations.from_sequences(PAPER_ACTIVE, PAPER_LOST)


@pytest.fixture(
    params=[(1.0, 1.0), (0.6677, 3.8025), (0.2, 0.3), (5.0, 50.0), (3.0, 0.5)],
    ids=["uniform", "paper", "u_shaped", "low_churn", "high_churn"],
)
def shape(request: pytest.FixtureRequest) -> tuple[float, float]:
    return request.param
