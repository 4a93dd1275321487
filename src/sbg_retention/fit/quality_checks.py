"""Quality checks for fitted sBG parameters."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from sbg_retention.core.probability import (
    churn_probability_table,
    retention_rate,
    survival_probability_table,
)
from sbg_retention.core.types import CohortObservations
from sbg_retention.fit.estimation import FitResult

_PROB_TOL = 1e-12
_CONSISTENCY_TOL = 1e-9


@dataclass(frozen=True)
class CheckResult:
    """One quality-check result."""

    name: str
    passed: bool
    details: str
    metric: float | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "name": self.name,
            "passed": self.passed,
            "details": self.details,
        }
        if self.metric is not None:
            payload["metric"] = self.metric
        return payload


@dataclass(frozen=True)
class QualityReport:
    """Aggregated hard/conceptual checks."""

    hard_checks: tuple[CheckResult, ...]
    conceptual_checks: tuple[CheckResult, ...]
    strict_conceptual: bool

    @property
    def hard_failures(self) -> tuple[CheckResult, ...]:
        return tuple(check for check in self.hard_checks if not check.passed)

    @property
    def conceptual_warnings(self) -> tuple[CheckResult, ...]:
        return tuple(check for check in self.conceptual_checks if not check.passed)

    @property
    def passed(self) -> bool:
        if self.hard_failures:
            return False
        if self.strict_conceptual and self.conceptual_warnings:
            return False
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "hard_checks": [check.to_dict() for check in self.hard_checks],
            "conceptual_checks": [check.to_dict() for check in self.conceptual_checks],
            "hard_failures": [check.to_dict() for check in self.hard_failures],
            "conceptual_warnings": [
                check.to_dict() for check in self.conceptual_warnings
            ],
            "strict_conceptual": self.strict_conceptual,
            "passed": self.passed,
        }


def run_fit_checks(
    *,
    fit: FitResult,
    observations: CohortObservations,
    horizon_periods: int = 70,
    max_survival_gap: float = 0.05,
    strict_conceptual: bool = False,
) -> QualityReport:
    """Run hard + conceptual checks against a fitted model."""
    hard_checks = [
        _check_converged(fit),
        _check_parameter_domain(fit),
    ]
    # Probability checks need a valid (alpha, beta).
    if hard_checks[-1].passed:
        churn = churn_probability_table(fit.alpha, fit.beta, horizon_periods)
        survival = survival_probability_table(fit.alpha, fit.beta, horizon_periods)
        hard_checks.extend(
            (
                _check_probability_bounds(churn=churn, survival=survival),
                _check_survival_monotone(survival),
                _check_survival_consistency(churn=churn, survival=survival),
            )
        )
        conceptual_checks: tuple[CheckResult, ...] = (
            _check_observed_fit(
                fit=fit,
                observations=observations,
                max_survival_gap=max_survival_gap,
            ),
            _check_retention_increasing(fit=fit, horizon_periods=horizon_periods),
        )
    else:
        conceptual_checks = ()

    return QualityReport(
        hard_checks=tuple(hard_checks),
        conceptual_checks=conceptual_checks,
        strict_conceptual=strict_conceptual,
    )


def _check_converged(fit: FitResult) -> CheckResult:
    return CheckResult(
        name="optimizer_converged",
        passed=fit.converged,
        details=fit.message,
        metric=float(fit.iterations),
    )


def _check_parameter_domain(fit: FitResult) -> CheckResult:
    passed = bool(
        np.isfinite(fit.alpha) and np.isfinite(fit.beta) and fit.alpha > 0.0 and fit.beta > 0.0
    )
    return CheckResult(
        name="parameter_domain",
        passed=passed,
        details=f"alpha={fit.alpha:.6g}, beta={fit.beta:.6g}",
    )


def _check_probability_bounds(*, churn: np.ndarray, survival: np.ndarray) -> CheckResult:
    low = float(min(churn.min(), survival.min()))
    high = float(max(churn.max(), survival.max()))
    passed = low >= -_PROB_TOL and high <= 1.0 + _PROB_TOL
    return CheckResult(
        name="probability_bounds",
        passed=passed,
        details=f"churn/survival range [{low:.3e}, {high:.6f}]",
        metric=low,
    )


def _check_survival_monotone(survival: np.ndarray) -> CheckResult:
    max_increase = float(np.max(np.diff(survival), initial=0.0))
    return CheckResult(
        name="survival_non_increasing",
        passed=max_increase <= _PROB_TOL,
        details="S(t) must not increase with t.",
        metric=max_increase,
    )


def _check_survival_consistency(*, churn: np.ndarray, survival: np.ndarray) -> CheckResult:
    gap = float(np.max(np.abs(survival - (1.0 - np.cumsum(churn)))))
    return CheckResult(
        name="survival_churn_consistency",
        passed=gap <= _CONSISTENCY_TOL,
        details="S(t) = 1 - sum_{i<=t} P(T=i)",
        metric=gap,
    )


def _check_observed_fit(
    *,
    fit: FitResult,
    observations: CohortObservations,
    max_survival_gap: float,
) -> CheckResult:
    observed = np.asarray(observations.observed_survival(), dtype=np.float64)
    fitted = survival_probability_table(fit.alpha, fit.beta, observations.n_periods)
    gap = float(np.max(np.abs(fitted - observed)))
    return CheckResult(
        name="observed_survival_gap",
        passed=gap <= max_survival_gap,
        details=f"max |fitted - observed| survival share (limit {max_survival_gap})",
        metric=gap,
    )


def _check_retention_increasing(*, fit: FitResult, horizon_periods: int) -> CheckResult:
    rates = retention_rate(fit.alpha, fit.beta, np.arange(1, horizon_periods + 1))
    min_step = float(np.min(np.diff(rates), initial=0.0))
    return CheckResult(
        name="retention_non_decreasing",
        passed=min_step >= -_PROB_TOL,
        details="Heterogeneous churn implies retention rates rise over time.",
        metric=min_step,
    )
