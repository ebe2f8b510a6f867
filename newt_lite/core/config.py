from __future__ import annotations

import numbers
from dataclasses import dataclass, fields, replace as _dc_replace
from typing import Any

__all__ = ["NewtonConfig"]


@dataclass(frozen=True)
class NewtonConfig:
    """
    Tolerances and limits for the globally-convergent Newton solver.

    Defaults are the classic Numerical-Recipes ``newt`` constants.

    Attributes
    ----------
    maxits
        Maximum number of outer Newton iterations.
    tolf
        Convergence tolerance on max|F_i| (the initial guess is accepted
        against ``0.01 * tolf``).
    tolmin
        Threshold of the scaled-gradient test that flags a spurious minimum
        of the merit function.
    stpmx
        Scaled maximum step length: ``stpmax = stpmx * max(|x0|, n)``.
    tolx
        Relative step threshold, used both by the outer stagnation test and
        by the line search's minimum step length.
    alf
        Armijo sufficient-decrease coefficient.
    eps
        Relative forward-difference step for the Jacobian.
    """
    maxits: int = 200
    tolf: float = 1.0e-8
    tolmin: float = 1.0e-12
    stpmx: float = 100.0
    tolx: float = 1.0e-30
    alf: float = 1.0e-4
    eps: float = 1.0e-8

    def __post_init__(self) -> None:
        if (
            not isinstance(self.maxits, numbers.Integral)
            or isinstance(self.maxits, bool)
            or self.maxits <= 0
        ):
            raise ValueError(f"maxits must be a positive integer, got {self.maxits!r}.")
        for f in fields(self):
            if f.name == "maxits":
                continue
            v = float(getattr(self, f.name))
            if not v > 0.0:
                raise ValueError(f"{f.name} must be positive, got {v!r}.")
        if not self.alf < 1.0:
            raise ValueError("alf must lie in (0, 1).")

    def replace(self, **changes: Any) -> "NewtonConfig":
        """Return a copy with some fields changed (validated again)."""
        return _dc_replace(self, **changes)
