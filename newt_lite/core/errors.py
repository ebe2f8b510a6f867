"""Exceptions raised by the Newton solver."""

from __future__ import annotations

from typing import Optional

import numpy as np

__all__ = [
    "NewtonError",
    "NonDescentDirectionError",
    "MaxIterationsExceeded",
    "SingularJacobianError",
]


class NewtonError(RuntimeError):
    """Base class for solver failures."""


class NonDescentDirectionError(NewtonError):
    """The line search was handed a direction with g.p >= 0.

    This is an internal inconsistency between Jacobian, gradient and Newton
    direction, never a property of the problem.
    """

    def __init__(self, slope: float) -> None:
        super().__init__(f"non-descent direction in line search (slope={slope:.3e}).")
        self.slope = float(slope)


class MaxIterationsExceeded(NewtonError):
    """The iteration budget ran out before any terminal test fired."""

    def __init__(self, maxits: int, residual_inf: float, x: Optional[np.ndarray] = None) -> None:
        super().__init__(
            f"maximum iterations exceeded without convergence "
            f"(maxits={maxits}, ||F||_inf={residual_inf:.3e})."
        )
        self.maxits = int(maxits)
        self.residual_inf = float(residual_inf)
        self.x = None if x is None else np.array(x, dtype=float)


class SingularJacobianError(NewtonError):
    """The Jacobian could not be factorised (exactly singular or non-finite)."""
