from __future__ import annotations

from typing import Any, Callable, Optional

import numpy as np

__all__ = [
    "ResidualFn",
    "MeritEvaluator",
    "JacobianEstimator",
    "as_vec",
    "as_residual",
    "norm_inf",
]


ResidualFn = Callable[[np.ndarray], Any]


def norm_inf(v: np.ndarray) -> float:
    return float(np.max(np.abs(v))) if v.size else 0.0


def as_vec(x: Any) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    if x.ndim != 1:
        raise ValueError("x must be a 1D array-like of shape (n,).")
    return x


def as_residual(F: Any, n: int) -> np.ndarray:
    """Coerce F(x) to a float vector of shape (n,).

    Non-finite entries are allowed through; callers decide what they mean.
    Always returns a copy: F may hand back its argument or a view of it.
    """
    Fv = np.array(F, dtype=float)
    if Fv.ndim != 1 or Fv.shape[0] != n:
        raise ValueError(f"F(x) must return shape ({n},), got {Fv.shape}.")
    return Fv


class MeritEvaluator:
    """Merit function m(x) = 0.5 * |F(x)|^2.

    The residual from the most recent call is kept on ``fvec`` so that the
    caller can read both values from a single evaluation of F.
    """

    def __init__(self, func: ResidualFn) -> None:
        self.func = func
        self.fvec: Optional[np.ndarray] = None

    def __call__(self, x: np.ndarray) -> float:
        x = as_vec(x)
        self.fvec = as_residual(self.func(x), x.size)
        return 0.5 * float(np.dot(self.fvec, self.fvec))


class JacobianEstimator:
    """Forward-difference Jacobian of F.

    Column j uses h = eps*|x_j| (eps when x_j == 0) and costs one call of F.
    """

    def __init__(self, func: ResidualFn, eps: float = 1.0e-8) -> None:
        self.func = func
        self.eps = float(eps)

    def __call__(self, x: np.ndarray, fvec: np.ndarray) -> np.ndarray:
        x = as_vec(x)
        n = x.size
        fvec = as_residual(fvec, n)

        J = np.empty((n, n), dtype=float)
        xh = x.copy()
        for j in range(n):
            temp = float(xh[j])
            h = self.eps * abs(temp)
            if h == 0.0:
                h = self.eps
            xh[j] = temp + h
            # exact representable step
            h = float(xh[j]) - temp
            Fj = as_residual(self.func(xh), n)
            J[:, j] = (Fj - fvec) / h
            xh[j] = temp
        return J
