from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .config import NewtonConfig
from .errors import (
    MaxIterationsExceeded,
    NewtonError,
    NonDescentDirectionError,
    SingularJacobianError,
)
from .evaluators import JacobianEstimator, MeritEvaluator, ResidualFn, as_vec, norm_inf
from .linalg import LinearSolver, solve_dense
from .linesearch import line_search

__all__ = ["NewtonStatus", "NewtonResult", "NewtonSolver", "newt"]

logger = logging.getLogger(__name__)


class NewtonStatus(str, Enum):
    CONVERGED = "converged"
    SPURIOUS_MINIMUM = "spurious_minimum"
    LINE_SEARCH_STALLED = "line_search_stalled"
    STEP_STAGNANT = "step_stagnant"
    MAX_ITERATIONS = "max_iterations"
    NON_DESCENT = "non_descent"
    SINGULAR_JACOBIAN = "singular_jacobian"


_FATAL = frozenset(
    {NewtonStatus.MAX_ITERATIONS, NewtonStatus.NON_DESCENT, NewtonStatus.SINGULAR_JACOBIAN}
)


@dataclass
class NewtonResult:
    """Outcome of one solve.

    ``check`` keeps the classic meaning: True only when the line search
    stalled at a point whose scaled gradient is below ``tolmin``, i.e. the
    iterate is probably a local minimum of the merit function and not a root.
    Use ``status`` to tell the remaining cases apart.
    """
    x: np.ndarray
    status: NewtonStatus
    fvec: np.ndarray
    f: float
    nit: int
    nfev: int
    njev: int
    merit_history: List[float] = field(default_factory=list)
    error: Optional[NewtonError] = None

    @property
    def converged(self) -> bool:
        return self.status is NewtonStatus.CONVERGED

    @property
    def check(self) -> bool:
        return self.status is NewtonStatus.SPURIOUS_MINIMUM

    @property
    def fatal(self) -> bool:
        return self.status in _FATAL

    @property
    def residual_inf(self) -> float:
        return norm_inf(self.fvec)

    @property
    def info(self) -> Dict[str, Any]:
        return {"converged": self.converged, "niter": self.nit, "F_norm": self.residual_inf}

    def raise_for_status(self) -> None:
        """Raise the stored error if the solve ended in a fatal state."""
        if self.error is not None:
            raise self.error


def _write_back(target: Any, x: np.ndarray) -> None:
    """Copy x into the caller's guess when it is an array or a list."""
    if isinstance(target, np.ndarray):
        target[...] = x
    elif isinstance(target, list):
        target[:] = x.tolist()


class NewtonSolver:
    """Globally convergent Newton-Raphson for F(x) = 0.

    Each outer iteration builds a forward-difference Jacobian, solves
    J p = -F for the Newton step and runs a backtracking line search on the
    merit function 0.5*|F|^2, which makes the method converge from poor
    starting points.

    The solver holds no per-solve state, so an instance may be reused (and
    shared between threads if ``func`` is reentrant).

    Example
    -------
    >>> solver = NewtonSolver(lambda x: x**2 - 2.0)
    >>> x, check = solver.solve([6.0])
    """

    def __init__(
        self,
        func: ResidualFn,
        config: Optional[NewtonConfig] = None,
        linear_solver: Optional[LinearSolver] = None,
    ) -> None:
        if not callable(func):
            raise TypeError("func must be callable.")
        self.func = func
        self.config = NewtonConfig() if config is None else config
        self.linear_solver = solve_dense if linear_solver is None else linear_solver

    def run(self, x0: Any) -> NewtonResult:
        """Solve from ``x0`` and report the outcome as a NewtonResult.

        Fatal outcomes (iteration budget, non-descent direction, singular
        Jacobian) are returned as statuses with ``error`` set; nothing is
        raised for them. Exceptions raised by F itself propagate.
        """
        cfg = self.config
        x = as_vec(x0).astype(float, copy=True)
        n = int(x.size)
        if n == 0:
            raise ValueError("x0 must have at least one dimension.")

        nfev = 0

        def counted(xx: np.ndarray) -> Any:
            nonlocal nfev
            nfev += 1
            return self.func(xx)

        fmin = MeritEvaluator(counted)
        fdjac = JacobianEstimator(counted, eps=cfg.eps)

        def finish(status: NewtonStatus, nit: int, error: Optional[NewtonError] = None) -> NewtonResult:
            log = logger.warning if (status in _FATAL or status is NewtonStatus.SPURIOUS_MINIMUM) else logger.info
            log("newton: %s after %d iterations (||F||_inf=%.3e, nfev=%d)", status.value, nit, norm_inf(fvec), nfev)
            return NewtonResult(
                x=x, status=status, fvec=fvec, f=f, nit=nit, nfev=nfev, njev=njev,
                merit_history=history, error=error,
            )

        f = fmin(x)
        fvec = fmin.fvec.copy()
        njev = 0
        history = [f]

        if norm_inf(fvec) < 0.01 * cfg.tolf:
            return finish(NewtonStatus.CONVERGED, 0)

        stpmax = cfg.stpmx * max(float(np.linalg.norm(x)), float(n))

        for its in range(1, cfg.maxits + 1):
            J = fdjac(x, fvec)
            njev += 1
            g = J.T @ fvec
            xold = x
            fold = f

            try:
                p = np.asarray(self.linear_solver(J, -fvec), dtype=float)
                ls = line_search(xold, fold, g, p, stpmax, fmin, alf=cfg.alf, tolx=cfg.tolx)
            except (SingularJacobianError, NonDescentDirectionError) as e:
                status = (
                    NewtonStatus.SINGULAR_JACOBIAN
                    if isinstance(e, SingularJacobianError)
                    else NewtonStatus.NON_DESCENT
                )
                return finish(status, its, e)

            x, f = ls.x, ls.f
            if not ls.check:
                fvec = ls.fvec.copy()
            history.append(f)
            logger.debug(
                "newton it=%d f=%.6e ||F||_inf=%.3e lam=%.3g nfev=%d",
                its, f, norm_inf(fvec), ls.lam, nfev,
            )

            if norm_inf(fvec) < cfg.tolf:
                return finish(NewtonStatus.CONVERGED, its)

            if ls.check:
                den = max(f, 0.5 * n)
                test = float(np.max(np.abs(g) * np.maximum(np.abs(x), 1.0) / den))
                if test < cfg.tolmin:
                    return finish(NewtonStatus.SPURIOUS_MINIMUM, its)
                return finish(NewtonStatus.LINE_SEARCH_STALLED, its)

            test = float(np.max(np.abs(x - xold) / np.maximum(np.abs(x), 1.0)))
            if test < cfg.tolx:
                return finish(NewtonStatus.STEP_STAGNANT, its)

        err = MaxIterationsExceeded(cfg.maxits, norm_inf(fvec), x)
        return finish(NewtonStatus.MAX_ITERATIONS, cfg.maxits, err)

    def solve(self, x: Any) -> Tuple[np.ndarray, bool]:
        """Solve F(x) = 0 starting from ``x``.

        The caller's guess is overwritten with the final iterate when it is a
        numpy array or a list.

        Returns
        -------
        x : np.ndarray
            Final iterate.
        check : bool
            True if the solver stopped at an apparent local minimum of
            0.5*|F|^2 rather than at a root.

        Raises
        ------
        TypeError
            If ``x`` is a numpy array of non-floating dtype, which could not
            hold the final iterate.
        MaxIterationsExceeded, NonDescentDirectionError, SingularJacobianError
            For the fatal outcomes.
        """
        if isinstance(x, np.ndarray) and not np.issubdtype(x.dtype, np.floating):
            raise TypeError(
                f"x must be a floating-point array to be updated in place, got dtype {x.dtype}; "
                "use run() or pass x.astype(float)."
            )
        res = self.run(x)
        _write_back(x, res.x)
        res.raise_for_status()
        return res.x, res.check


def newt(
    func: ResidualFn,
    x: Any,
    *,
    config: Optional[NewtonConfig] = None,
    linear_solver: Optional[LinearSolver] = None,
) -> Tuple[np.ndarray, bool]:
    """Functional form of ``NewtonSolver(func, ...).solve(x)``."""
    return NewtonSolver(func, config=config, linear_solver=linear_solver).solve(x)
