"""Serialization helpers for sBG fit run artifacts."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from sbg_retention.core.params import ShapeParams, load_shape_params


REQUIRED_RUN_FILES: tuple[str, ...] = (
    "config_resolved.yaml",
    "fit.yaml",
    "fit_metrics.json",
    "projection_table.csv",
    "value_summary.json",
    "quality_report.json",
)

# Written even when the fit ends outside alpha, beta > 0 and nothing can be projected.
DIAGNOSTIC_RUN_FILES: tuple[str, ...] = (
    "config_resolved.yaml",
    "fit_metrics.json",
    "quality_report.json",
)


@dataclass(frozen=True)
class LoadedRunArtifacts:
    """Structured artifacts loaded from a fit run directory."""

    run_dir: Path
    params: ShapeParams
    config_resolved: dict[str, Any]
    fit_metrics: dict[str, Any]
    projection: pd.DataFrame
    value_summary: dict[str, Any]
    quality_report: dict[str, Any]


def ensure_run_dir(run_dir: Path) -> None:
    """Create run directory and parent paths."""
    run_dir.mkdir(parents=True, exist_ok=True)


def write_json(path: Path, payload: Any) -> None:
    """Write JSON with stable formatting."""
    path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def write_yaml(path: Path, payload: Any) -> None:
    """Write YAML with stable formatting."""
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


def write_projection_table(path: Path, table: pd.DataFrame) -> None:
    table.to_csv(path, index=True)


def load_run_artifacts(run_dir: Path) -> LoadedRunArtifacts:
    """Load all required artifacts from a run directory."""
    missing = [name for name in REQUIRED_RUN_FILES if not (run_dir / name).exists()]
    if missing:
        raise FileNotFoundError(
            f"Missing required run artifacts in {run_dir}: {', '.join(missing)}"
        )

    config_resolved = yaml.safe_load((run_dir / "config_resolved.yaml").read_text())
    if not isinstance(config_resolved, dict):
        raise ValueError("config_resolved.yaml must contain a YAML mapping.")

    projection = pd.read_csv(run_dir / "projection_table.csv", index_col="period")

    return LoadedRunArtifacts(
        run_dir=run_dir,
        params=load_shape_params(run_dir / "fit.yaml"),
        config_resolved=config_resolved,
        fit_metrics=json.loads((run_dir / "fit_metrics.json").read_text()),
        projection=projection,
        value_summary=json.loads((run_dir / "value_summary.json").read_text()),
        quality_report=json.loads((run_dir / "quality_report.json").read_text()),
    )
