"""Tests for shape-parameter schema and YAML serialization."""

from __future__ import annotations

from pathlib import Path

import pytest

from sbg_retention.core.errors import InvalidArgumentError
from sbg_retention.core.params import ShapeParams, load_shape_params, save_shape_params


def test_params_roundtrip_yaml(tmp_path: Path) -> None:
    params = ShapeParams(alpha=0.668, beta=3.806, metadata={"source": "unit-test"})
    output_path = tmp_path / "nested" / "fit.yaml"
    save_shape_params(params=params, output_path=output_path)

    loaded = load_shape_params(output_path)
    assert loaded == params
    assert loaded.metadata == {"source": "unit-test"}


def test_mean_churn() -> None:
    assert ShapeParams(alpha=1.0, beta=3.0).mean_churn == pytest.approx(0.25)


def test_params_are_hashable_and_compare_on_shape_only() -> None:
    tagged = ShapeParams(alpha=0.668, beta=3.806, metadata={"method": "Nelder-Mead"})
    plain = ShapeParams(alpha=0.668, beta=3.806)

    assert tagged == plain
    assert hash(tagged) == hash(plain)
    assert len({tagged, plain, ShapeParams(alpha=1.0, beta=2.0)}) == 2


def test_load_rejects_non_positive_parameters(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("alpha: -1.0\nbeta: 2.0\n")

    with pytest.raises(InvalidArgumentError):
        load_shape_params(path)


def test_load_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1.0\n- 2.0\n")

    with pytest.raises(ValueError, match="Expected a mapping"):
        load_shape_params(path)
