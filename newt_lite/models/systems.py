"""
Benchmark nonlinear systems F(x) = 0 for the Newton solver.

Most are classic test problems (Moré, Garbow & Hillstrom 1981); ``quadratic_2d``
is the small 2D system with root (6, 1) used throughout the tests, and
``spurious_minimum`` has no root at all: its merit function 0.5*|F|^2 has a
strictly positive minimum at the origin.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np

__all__ = [
    "NonlinearSystem",
    "SYSTEMS",
    "get_system",
]


@dataclass(frozen=True)
class NonlinearSystem:
    name: str
    func: Callable[[np.ndarray], np.ndarray]
    x0: np.ndarray
    root: Optional[np.ndarray] = None
    description: str = ""

    @property
    def n(self) -> int:
        return int(self.x0.size)

    def initial_guess(self) -> np.ndarray:
        """Fresh copy of x0 (the solver may overwrite the guess in place)."""
        return np.array(self.x0, dtype=float)


def _sqrt2(x: np.ndarray) -> np.ndarray:
    return np.array([x[0] ** 2 - 2.0], dtype=float)


def _quadratic_2d(x: np.ndarray) -> np.ndarray:
    #   x^2 + y - 37 = 0
    #   x - y^2 - 5 = 0
    return np.array([x[0] ** 2 + x[1] - 37.0, x[0] - x[1] ** 2 - 5.0], dtype=float)


def _rosenbrock(x: np.ndarray) -> np.ndarray:
    return np.array([10.0 * (x[1] - x[0] ** 2), 1.0 - x[0]], dtype=float)


def _freudenstein_roth(x: np.ndarray) -> np.ndarray:
    x1, x2 = float(x[0]), float(x[1])
    return np.array(
        [
            -13.0 + x1 + ((5.0 - x2) * x2 - 2.0) * x2,
            -29.0 + x1 + ((x2 + 1.0) * x2 - 14.0) * x2,
        ],
        dtype=float,
    )


def _powell_badly_scaled(x: np.ndarray) -> np.ndarray:
    x1, x2 = float(x[0]), float(x[1])
    return np.array(
        [1.0e4 * x1 * x2 - 1.0, np.exp(-x1) + np.exp(-x2) - 1.0001],
        dtype=float,
    )


def _broyden_tridiagonal(x: np.ndarray) -> np.ndarray:
    # F_i = (3 - 2 x_i) x_i - x_{i-1} - 2 x_{i+1} + 1,  x_0 = x_{n+1} = 0
    xm = np.concatenate(([0.0], x[:-1]))
    xp = np.concatenate((x[1:], [0.0]))
    return (3.0 - 2.0 * x) * x - xm - 2.0 * xp + 1.0


_LINEAR_A = np.array([[4.0, 1.0, 0.0], [1.0, 3.0, 1.0], [0.0, 1.0, 2.0]], dtype=float)
_LINEAR_B = np.array([1.0, 2.0, 3.0], dtype=float)


def _linear_3d(x: np.ndarray) -> np.ndarray:
    return _LINEAR_A @ x - _LINEAR_B


def _spurious_minimum(x: np.ndarray) -> np.ndarray:
    # F_0 >= 1e-6 > 0 everywhere; m has its minimum 0.5e-12 at the origin.
    return np.array([x[0] ** 2 + 1.0e-6, x[1]], dtype=float)


SYSTEMS: Dict[str, NonlinearSystem] = {
    s.name: s
    for s in (
        NonlinearSystem(
            "sqrt2", _sqrt2, np.array([6.0]), np.array([np.sqrt(2.0)]),
            "x^2 - 2 = 0 (n=1)",
        ),
        NonlinearSystem(
            "quadratic_2d", _quadratic_2d, np.array([5.0, 2.0]), np.array([6.0, 1.0]),
            "x^2 + y = 37, x - y^2 = 5",
        ),
        NonlinearSystem(
            "rosenbrock", _rosenbrock, np.array([-1.2, 1.0]), np.array([1.0, 1.0]),
            "Rosenbrock residuals 10(y - x^2), 1 - x",
        ),
        NonlinearSystem(
            "freudenstein_roth", _freudenstein_roth, np.array([0.5, -2.0]), np.array([5.0, 4.0]),
            "Freudenstein-Roth; m has a local minimum near (11.41, -0.897)",
        ),
        NonlinearSystem(
            "powell_badly_scaled", _powell_badly_scaled, np.array([0.0, 1.0]),
            np.array([1.098159e-5, 9.106146]),
            "Powell badly scaled (root given to 7 digits)",
        ),
        NonlinearSystem(
            "broyden_tridiagonal", _broyden_tridiagonal, -np.ones(5), None,
            "Broyden tridiagonal, n=5",
        ),
        NonlinearSystem(
            "linear_3d", _linear_3d, np.zeros(3), np.linalg.solve(_LINEAR_A, _LINEAR_B),
            "A x = b with a symmetric positive definite 3x3 A",
        ),
        NonlinearSystem(
            "spurious_minimum", _spurious_minimum, np.zeros(2), None,
            "no root; starts at the positive minimum of the merit function",
        ),
    )
}


def get_system(name: str) -> NonlinearSystem:
    try:
        return SYSTEMS[name]
    except KeyError:
        raise KeyError(f"unknown system {name!r}; available: {', '.join(sorted(SYSTEMS))}") from None
