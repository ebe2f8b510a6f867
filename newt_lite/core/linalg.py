from __future__ import annotations

import warnings
from typing import Callable

import numpy as np
import scipy.linalg

from .errors import SingularJacobianError

__all__ = ["LinearSolver", "solve_dense"]


LinearSolver = Callable[[np.ndarray, np.ndarray], np.ndarray]


def solve_dense(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solve A y = b by LU decomposition with partial pivoting.

    Raises SingularJacobianError when A has non-finite entries or an exactly
    zero pivot. Near-singular systems are solved as they are.
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    if A.ndim != 2 or A.shape[0] != A.shape[1] or A.shape[0] != b.shape[0]:
        raise ValueError(f"incompatible shapes for dense solve: A{A.shape}, b{b.shape}.")
    if not (np.all(np.isfinite(A)) and np.all(np.isfinite(b))):
        raise SingularJacobianError("linear system has non-finite entries.")

    with warnings.catch_warnings():
        # zero pivots are reported below, not as LinAlgWarning
        warnings.simplefilter("ignore", scipy.linalg.LinAlgWarning)
        lu, piv = scipy.linalg.lu_factor(A, check_finite=False)

    zero = np.flatnonzero(np.diag(lu) == 0.0)
    if zero.size:
        raise SingularJacobianError(f"matrix is exactly singular (zero pivot at row {int(zero[0])}).")
    return scipy.linalg.lu_solve((lu, piv), b, check_finite=False)
