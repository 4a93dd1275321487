"""Shape-parameter schema and YAML helpers for fitted sBG models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import math
from pathlib import Path
from typing import Any

import yaml

from sbg_retention.core.errors import InvalidArgumentError


@dataclass(frozen=True)
class ShapeParams:
    """Beta mixing-distribution parameters of the sBG model."""

    alpha: float
    beta: float
    metadata: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def validate(self) -> None:
        validate_shape(self.alpha, self.beta)

    @property
    def mean_churn(self) -> float:
        """Mean of the Beta churn-propensity distribution."""
        return self.alpha / (self.alpha + self.beta)

    def to_dict(self) -> dict[str, Any]:
        """Convert parameter object to a plain dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ShapeParams":
        """Create parameter object from a plain dict."""
        metadata = payload.get("metadata") or {}
        return cls(
            alpha=float(payload["alpha"]),
            beta=float(payload["beta"]),
            metadata=dict(metadata),
        )


def validate_shape(alpha: float, beta: float) -> None:
    """Raise when (alpha, beta) is outside the open positive quadrant."""
    for name, value in (("alpha", alpha), ("beta", beta)):
        if not math.isfinite(value) or value <= 0.0:
            raise InvalidArgumentError(f"{name} must be a positive finite number, got {value!r}.")


def save_shape_params(params: ShapeParams, output_path: Path) -> None:
    """Serialize parameters to YAML."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(yaml.safe_dump(params.to_dict(), sort_keys=False))


def load_shape_params(path: Path) -> ShapeParams:
    """Load parameters from YAML."""
    payload = yaml.safe_load(path.read_text())
    if not isinstance(payload, dict):
        raise ValueError("Expected a mapping in shape parameter YAML.")
    params = ShapeParams.from_dict(payload)
    params.validate()
    return params
