"""Observation types shared by the likelihood and estimator modules."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import math
from typing import Union

from sbg_retention.core.errors import InvalidArgumentError, ShapeMismatchError


Period = int
PeriodArg = Union[Period, Sequence[Period]]


@dataclass(frozen=True)
class CohortObservations:
    """Observed cohort counts for periods 1..T.

    Attributes:
        active: Customers still active at the end of each period.
        lost: Customers lost during each period.
    """

    active: tuple[int, ...]
    lost: tuple[int, ...]

    @classmethod
    def from_sequences(
        cls,
        active_counts: Sequence[float],
        lost_counts: Sequence[float],
    ) -> "CohortObservations":
        """Build and validate observations from two count sequences."""
        active = list(active_counts)
        lost = list(lost_counts)
        if len(active) != len(lost):
            raise ShapeMismatchError(len(active), len(lost))
        observations = cls(
            active=tuple(_as_count(value, "active") for value in active),
            lost=tuple(_as_count(value, "lost") for value in lost),
        )
        observations.validate()
        return observations

    @property
    def n_periods(self) -> int:
        return len(self.active)

    @property
    def initial_size(self) -> int:
        """Cohort size at period 0."""
        return self.active[0] + self.lost[0]

    def validate(self) -> None:
        if len(self.active) != len(self.lost):
            raise ShapeMismatchError(len(self.active), len(self.lost))
        if not self.active:
            raise InvalidArgumentError("At least one observed period is required.")
        for name, series in (("active", self.active), ("lost", self.lost)):
            if any(count < 0 for count in series):
                raise InvalidArgumentError(f"{name} counts must be non-negative.")

    def observed_survival(self) -> tuple[float, ...]:
        """Share of the initial cohort still active after each period."""
        size = self.initial_size
        if size <= 0:
            raise InvalidArgumentError("Cohort has no customers at period 0.")
        return tuple(count / size for count in self.active)

    def to_dict(self) -> dict[str, list[int]]:
        return {"active": list(self.active), "lost": list(self.lost)}


def _as_count(value: float, name: str) -> int:
    number = float(value)
    if not math.isfinite(number) or number != int(number):
        raise InvalidArgumentError(f"{name} counts must be whole numbers, got {value!r}.")
    return int(number)
