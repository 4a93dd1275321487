"""Error taxonomy for sBG fitting and projection."""

from __future__ import annotations


class SBGError(ValueError):
    """Base class for invalid inputs to the sBG library."""


class ShapeMismatchError(SBGError):
    """Active and lost observation series have different lengths."""

    def __init__(self, n_active: int, n_lost: int) -> None:
        super().__init__(
            "Active and lost customer series have different lengths: "
            f"{n_active} and {n_lost}."
        )
        self.n_active = n_active
        self.n_lost = n_lost


class InvalidArgumentError(SBGError):
    """Argument outside the domain of the model."""
