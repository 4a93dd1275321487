"""Parameter estimation and fit diagnostics for the sBG model."""

from sbg_retention.fit.estimation import (
    EstimatorConfig,
    FitResult,
    estimate_parameters,
)
from sbg_retention.fit.quality_checks import QualityReport, run_fit_checks

__all__ = [
    "EstimatorConfig",
    "FitResult",
    "QualityReport",
    "estimate_parameters",
    "run_fit_checks",
]
