"""Maximum-likelihood estimation of sBG shape parameters.

The search is deliberately unconstrained: no bounds and no log
reparameterisation. Trial points with alpha or beta <= 0 evaluate to ``+inf``
in the objective, and the simplex contracts back into the valid region.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, replace
import logging
import math
from typing import Any

import numpy as np
from scipy.optimize import minimize

from sbg_retention.core.likelihood import RECURSIVE, SUPPORTED_LIKELIHOODS, build_objective
from sbg_retention.core.params import ShapeParams
from sbg_retention.core.types import CohortObservations

logger = logging.getLogger(__name__)

NELDER_MEAD = "Nelder-Mead"
POWELL = "Powell"
SUPPORTED_METHODS = (NELDER_MEAD, POWELL)


@dataclass(frozen=True)
class EstimatorConfig:
    """Minimizer configuration for :func:`estimate_parameters`."""

    method: str = NELDER_MEAD
    initial_guess: tuple[float, float] = (1.0, 1.0)
    xatol: float = 1e-8
    fatol: float = 1e-8
    max_iters: int = 2000
    max_evals: int = 4000
    likelihood: str = RECURSIVE
    show_progress: bool = False
    progress_desc: str = "sBG fit"

    def validate(self) -> None:
        if self.method not in SUPPORTED_METHODS:
            raise ValueError(
                f"Unsupported method={self.method!r}. Expected one of {SUPPORTED_METHODS}."
            )
        if self.likelihood not in SUPPORTED_LIKELIHOODS:
            raise ValueError(
                f"Unsupported likelihood={self.likelihood!r}. "
                f"Expected one of {SUPPORTED_LIKELIHOODS}."
            )
        if len(self.initial_guess) != 2:
            raise ValueError("initial_guess must be an (alpha, beta) pair.")
        if not all(math.isfinite(value) for value in self.initial_guess):
            raise ValueError("initial_guess must contain finite values.")
        if self.xatol <= 0.0 or self.fatol <= 0.0:
            raise ValueError("xatol and fatol must be positive.")
        if self.max_iters <= 0:
            raise ValueError("max_iters must be positive.")
        if self.max_evals <= 0:
            raise ValueError("max_evals must be positive.")

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["initial_guess"] = [float(value) for value in self.initial_guess]
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "EstimatorConfig":
        """Build a config from a YAML mapping; unknown keys are rejected."""
        known = set(cls.__dataclass_fields__)
        unknown = set(payload) - known
        if unknown:
            raise ValueError(f"Unknown estimator config keys: {', '.join(sorted(unknown))}")
        kwargs = dict(payload)
        if "initial_guess" in kwargs:
            kwargs["initial_guess"] = tuple(float(value) for value in kwargs["initial_guess"])
        for name in ("xatol", "fatol"):
            if name in kwargs:
                kwargs[name] = float(kwargs[name])
        for name in ("max_iters", "max_evals"):
            if name in kwargs:
                kwargs[name] = int(kwargs[name])
        config = cls(**kwargs)
        config.validate()
        return config


@dataclass(frozen=True)
class FitResult:
    """Outputs from one maximum-likelihood fit."""

    alpha: float
    beta: float
    neg_log_likelihood: float
    converged: bool
    iterations: int
    evaluations: int
    message: str
    method: str

    @property
    def params(self) -> ShapeParams:
        return ShapeParams(
            alpha=self.alpha,
            beta=self.beta,
            metadata={
                "neg_log_likelihood": self.neg_log_likelihood,
                "converged": self.converged,
                "method": self.method,
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def estimate_parameters(
    active_counts: Sequence[float],
    lost_counts: Sequence[float],
    initial_guess: tuple[float, float] | None = None,
    config: EstimatorConfig | None = None,
) -> FitResult:
    """Fit (alpha, beta) to observed active/lost counts.

    Args:
        active_counts: Customers active at the end of periods 1..T.
        lost_counts: Customers lost in periods 1..T.
        initial_guess: Optional starting point overriding ``config.initial_guess``.
        config: Minimizer configuration. Defaults to Nelder-Mead from (1, 1).

    Returns:
        FitResult with the best point found. ``converged`` is False when the
        iteration or evaluation budget ran out, or the optimum is not a valid
        (finite, positive) point; the caller decides what to do with it.

    Raises:
        ShapeMismatchError: If the count series differ in length. Raised before
            any optimization is attempted.
        InvalidArgumentError: If the series are empty or contain negative counts.
        ValueError: If the configuration is invalid.
    """
    observations = CohortObservations.from_sequences(active_counts, lost_counts)
    cfg = config or EstimatorConfig()
    cfg.validate()
    if initial_guess is not None:
        cfg = replace(cfg, initial_guess=tuple(float(value) for value in initial_guess))
        cfg.validate()
    start = cfg.initial_guess

    objective = build_objective(observations, likelihood=cfg.likelihood)
    logger.info(
        "Fitting sBG to %d periods with %s from alpha=%.4g, beta=%.4g.",
        observations.n_periods,
        cfg.method,
        start[0],
        start[1],
    )

    progress = None
    callback = None
    if cfg.show_progress:
        # Import tqdm lazily to avoid notebook-side effects when progress is disabled.
        from tqdm.auto import tqdm

        progress = tqdm(total=cfg.max_iters, desc=cfg.progress_desc, dynamic_ncols=True, leave=False)

        def callback(xk: np.ndarray) -> None:
            progress.update(1)
            progress.set_postfix(
                {"alpha": f"{xk[0]:.4f}", "beta": f"{xk[1]:.4f}"}, refresh=False
            )

    try:
        # Simplex differences over +inf vertices produce NaN; that is expected.
        with np.errstate(invalid="ignore", over="ignore"):
            result = minimize(
                objective,
                np.asarray(start, dtype=np.float64),
                method=cfg.method,
                callback=callback,
                options=_minimizer_options(cfg),
            )
    finally:
        if progress is not None:
            progress.close()

    alpha, beta = (float(value) for value in result.x)
    fun = float(result.fun)
    valid_point = math.isfinite(fun) and alpha > 0.0 and beta > 0.0
    converged = bool(result.success) and valid_point
    message = str(result.message)
    if bool(result.success) and not valid_point:
        message = f"Optimizer stopped at an invalid point: alpha={alpha}, beta={beta}, nll={fun}."

    fit = FitResult(
        alpha=alpha,
        beta=beta,
        neg_log_likelihood=fun,
        converged=converged,
        iterations=int(getattr(result, "nit", 0)),
        evaluations=int(getattr(result, "nfev", 0)),
        message=message,
        method=cfg.method,
    )
    if converged:
        logger.info(
            "sBG fit converged: alpha=%.6g, beta=%.6g, nll=%.6f (%d iterations).",
            fit.alpha,
            fit.beta,
            fit.neg_log_likelihood,
            fit.iterations,
        )
    else:
        logger.warning("sBG fit did not converge: %s", fit.message)
    return fit


def _minimizer_options(config: EstimatorConfig) -> dict[str, Any]:
    if config.method == NELDER_MEAD:
        return {
            "xatol": config.xatol,
            "fatol": config.fatol,
            "maxiter": config.max_iters,
            "maxfev": config.max_evals,
        }
    return {
        "xtol": config.xatol,
        "ftol": config.fatol,
        "maxiter": config.max_iters,
        "maxfev": config.max_evals,
    }
