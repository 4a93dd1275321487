"""Fit an sBG model to one cohort and persist run artifacts."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import logging
import math
from pathlib import Path
from typing import Any

import yaml

from sbg_retention.core.params import save_shape_params
from sbg_retention.core.projection import projection_table
from sbg_retention.core.types import CohortObservations
from sbg_retention.core.value import (
    MIN_RENEWAL_COUNT,
    discounted_expected_lifetime,
    discounted_expected_residual_lifetime,
)
from sbg_retention.fit.artifacts import (
    DIAGNOSTIC_RUN_FILES,
    ensure_run_dir,
    write_json,
    write_projection_table,
    write_yaml,
)
from sbg_retention.fit.estimation import EstimatorConfig, estimate_parameters
from sbg_retention.fit.quality_checks import run_fit_checks


def main() -> int:
    parser = argparse.ArgumentParser(description="Fit the shifted-beta-geometric model.")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("configs/sbg/fit.yaml"),
        help="Path to fit config YAML (cohort, estimator, value settings).",
    )
    parser.add_argument(
        "--active",
        type=int,
        nargs="+",
        default=None,
        help="Active customer counts for periods 1..T (overrides config).",
    )
    parser.add_argument(
        "--lost",
        type=int,
        nargs="+",
        default=None,
        help="Lost customer counts for periods 1..T (overrides config).",
    )
    parser.add_argument(
        "--run-dir",
        type=Path,
        default=None,
        help="Optional explicit output run directory.",
    )
    parser.add_argument("--tag", default="manual", help="Tag used in default run directory.")
    parser.add_argument("--method", default=None)
    parser.add_argument("--max-iters", type=int, default=None)
    parser.add_argument("--discount-rate", type=float, default=None)
    parser.add_argument("--horizon-periods", type=int, default=None)
    parser.add_argument("--renewal-count", type=int, default=None)
    parser.add_argument("--n-periods", type=int, default=None, help="Projection length.")
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a tqdm progress bar while the optimizer runs.",
    )
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = _load_yaml_config(args.config)
    cohort_cfg = _section(config, "cohort")
    estimator_cfg = _section(config, "estimator")
    value_cfg = _section(config, "value")
    checks_cfg = _section(config, "checks")

    active = args.active if args.active is not None else cohort_cfg.get("active")
    lost = args.lost if args.lost is not None else cohort_cfg.get("lost")
    if active is None or lost is None:
        parser.error("Cohort counts are required (config 'cohort' or --active/--lost).")
    observations = CohortObservations.from_sequences(active, lost)

    if args.method is not None:
        estimator_cfg["method"] = args.method
    if args.max_iters is not None:
        estimator_cfg["max_iters"] = args.max_iters
    if args.progress:
        estimator_cfg["show_progress"] = True
    estimator = EstimatorConfig.from_dict(estimator_cfg)

    discount_rate = float(
        args.discount_rate if args.discount_rate is not None else value_cfg.get("discount_rate", 0.025)
    )
    horizon_periods = int(
        args.horizon_periods
        if args.horizon_periods is not None
        else value_cfg.get("horizon_periods", 70)
    )
    renewal_count = int(
        args.renewal_count if args.renewal_count is not None else value_cfg.get("renewal_count", 2)
    )
    n_periods = int(
        args.n_periods
        if args.n_periods is not None
        else _section(config, "projection").get("n_periods", 2 * observations.n_periods)
    )
    if renewal_count < MIN_RENEWAL_COUNT:
        parser.error(f"renewal_count must be >= {MIN_RENEWAL_COUNT}, got {renewal_count}.")
    if horizon_periods <= renewal_count:
        parser.error(
            f"horizon_periods ({horizon_periods}) must exceed renewal_count ({renewal_count})."
        )
    if not 0.0 <= discount_rate < 1.0:
        parser.error(f"discount_rate must be in [0, 1), got {discount_rate}.")
    if n_periods < 1:
        parser.error(f"n_periods must be positive, got {n_periods}.")

    fit = estimate_parameters(observations.active, observations.lost, config=estimator)
    quality = run_fit_checks(
        fit=fit,
        observations=observations,
        horizon_periods=horizon_periods,
        max_survival_gap=float(checks_cfg.get("max_survival_gap", 0.05)),
        strict_conceptual=bool(checks_cfg.get("strict_conceptual", False)),
    )

    # Projections need a valid (alpha, beta); otherwise only diagnostics are written.
    projection = None
    value_summary = None
    if _in_domain(fit.alpha, fit.beta):
        projection = projection_table(fit.alpha, fit.beta, n_periods)
        value_summary = {
            "discount_rate": discount_rate,
            "horizon_periods": horizon_periods,
            "renewal_count": renewal_count,
            "discounted_expected_lifetime": discounted_expected_lifetime(
                fit.alpha,
                fit.beta,
                discount_rate=discount_rate,
                horizon_periods=horizon_periods,
            ),
            "discounted_expected_residual_lifetime": discounted_expected_residual_lifetime(
                fit.alpha,
                fit.beta,
                renewal_count=renewal_count,
                discount_rate=discount_rate,
                horizon_periods=horizon_periods,
            ),
        }

    run_dir = args.run_dir or _default_run_dir(tag=args.tag)
    ensure_run_dir(run_dir)

    config_payload = {
        "created_at_utc": datetime.now(timezone.utc).isoformat(),
        "config_path": str(args.config),
        "cohort": observations.to_dict(),
        "estimator": estimator.to_dict(),
        "value": {
            "discount_rate": discount_rate,
            "horizon_periods": horizon_periods,
            "renewal_count": renewal_count,
        },
        "projection": {"n_periods": n_periods},
    }
    write_yaml(run_dir / "config_resolved.yaml", config_payload)
    write_json(run_dir / "fit_metrics.json", fit.to_dict())
    write_json(run_dir / "quality_report.json", quality.to_dict())

    if projection is not None and value_summary is not None:
        save_shape_params(fit.params, run_dir / "fit.yaml")
        write_projection_table(run_dir / "projection_table.csv", projection)
        write_json(run_dir / "value_summary.json", value_summary)
    else:
        print(
            "Fit ended outside the parameter domain; wrote "
            + ", ".join(DIAGNOSTIC_RUN_FILES)
            + " only."
        )

    print(f"Run directory: {run_dir}")
    print(
        f"sBG fit: converged={fit.converged}, alpha={fit.alpha:.4f}, beta={fit.beta:.4f}, "
        f"nll={fit.neg_log_likelihood:.4f}, iterations={fit.iterations}"
    )
    if quality.conceptual_warnings:
        print(
            "Conceptual warnings: "
            + ", ".join(warning.name for warning in quality.conceptual_warnings)
        )

    if not fit.converged:
        print(f"Optimizer did not converge: {fit.message}")
        return 1
    if quality.hard_failures:
        print("Hard quality checks failed; see quality_report.json.")
        return 1
    return 0


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Expected mapping in config file: {config_path}")
    return raw


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    raw = config.get(name) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config section '{name}' must be a mapping.")
    return dict(raw)


def _in_domain(alpha: float, beta: float) -> bool:
    return math.isfinite(alpha) and math.isfinite(beta) and alpha > 0.0 and beta > 0.0


def _default_run_dir(tag: str) -> Path:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    safe_tag = "".join(ch if ch.isalnum() or ch in {"-", "_"} else "_" for ch in tag)
    return Path("runs") / "sbg" / f"{timestamp}_{safe_tag}"


if __name__ == "__main__":
    raise SystemExit(main())
