from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .errors import NonDescentDirectionError
from .evaluators import MeritEvaluator, as_vec

__all__ = ["LineSearchResult", "line_search"]

logger = logging.getLogger(__name__)


@dataclass
class LineSearchResult:
    """Outcome of one backtracking line search.

    x, f, fvec
        Accepted iterate, merit value and residual. When ``check`` is True
        these are the starting point's values (x is a copy of xold, fvec is
        None because the line search never evaluated F there).
    lam
        Step length of the last trial (accepted or not).
    slope
        Directional derivative g.direction.
    check
        True if no acceptable step was found above the minimum step length.
    direction
        The search direction actually used (p after clamping to stpmax).
    nfev
        Number of merit evaluations (= calls of F).
    """
    x: np.ndarray
    f: float
    fvec: Optional[np.ndarray]
    lam: float
    slope: float
    check: bool
    direction: np.ndarray
    nfev: int


def _backtrack(
    lam: float,
    lam2: float,
    f: float,
    f2: float,
    fold: float,
    slope: float,
    first: bool,
) -> float:
    """Next trial step from the quadratic (first) or cubic model of m along p."""
    if not math.isfinite(f):
        return 0.5 * lam
    if first:
        tmplam = -slope / (2.0 * (f - fold - slope))
    else:
        rhs1 = f - fold - lam * slope
        rhs2 = f2 - fold - lam2 * slope
        a = (rhs1 / (lam * lam) - rhs2 / (lam2 * lam2)) / (lam - lam2)
        b = (-lam2 * rhs1 / (lam * lam) + lam * rhs2 / (lam2 * lam2)) / (lam - lam2)
        if a == 0.0:
            tmplam = -slope / (2.0 * b) if b != 0.0 else 0.5 * lam
        else:
            disc = b * b - 3.0 * a * slope
            if disc < 0.0:
                tmplam = 0.5 * lam
            elif b <= 0.0:
                tmplam = (-b + math.sqrt(disc)) / (3.0 * a)
            else:
                tmplam = -slope / (b + math.sqrt(disc))
    if not math.isfinite(tmplam):
        tmplam = 0.5 * lam
    tmplam = min(tmplam, 0.5 * lam)
    return max(tmplam, 0.1 * lam)


def line_search(
    xold: np.ndarray,
    fold: float,
    g: np.ndarray,
    p: np.ndarray,
    stpmax: float,
    merit: MeritEvaluator,
    *,
    alf: float = 1.0e-4,
    tolx: float = 1.0e-30,
) -> LineSearchResult:
    """Backtracking line search along p with Armijo sufficient decrease.

    Starting from the full step lam=1, accept x = xold + lam*p when

        m(x) <= fold + alf*lam*(g.p)   and   m(x) < fold,

    otherwise shrink lam using a quadratic (first backtrack) or cubic model
    of m, kept within [0.1*lam, 0.5*lam]. If lam drops below the minimum
    relative step length, xold is returned with ``check=True``.

    Parameters
    ----------
    xold, fold
        Starting point and merit value there.
    g
        Gradient of the merit function at xold (J^T F).
    p
        Search direction (the Newton step). Not modified.
    stpmax
        Maximum step length; longer p are rescaled to this norm.
    merit
        Merit evaluator wrapping F.

    Raises
    ------
    NonDescentDirectionError
        If g.p >= 0 after clamping.
    """
    xold = as_vec(xold)
    g = as_vec(g)
    p = as_vec(p).copy()
    if g.shape != xold.shape or p.shape != xold.shape:
        raise ValueError(f"xold, g and p must share shape {xold.shape}, got {g.shape} and {p.shape}.")
    fold = float(fold)

    pnorm = float(np.linalg.norm(p))
    if pnorm > float(stpmax):
        p *= float(stpmax) / pnorm

    slope = float(np.dot(g, p))
    if not slope < 0.0:
        raise NonDescentDirectionError(slope)

    test = float(np.max(np.abs(p) / np.maximum(np.abs(xold), 1.0)))
    lam_min = float(tolx) / max(test, 1.0e-30)

    lam = 1.0
    lam2 = 0.0
    f2 = 0.0
    nfev = 0
    while True:
        x = xold + lam * p
        f = merit(x)
        nfev += 1

        if lam < lam_min:
            logger.debug("line_search: lam=%.3e below lam_min=%.3e after %d trials", lam, lam_min, nfev)
            return LineSearchResult(
                x=xold.copy(), f=fold, fvec=None, lam=lam, slope=slope,
                check=True, direction=p, nfev=nfev,
            )
        if f <= fold + alf * lam * slope and f < fold:
            return LineSearchResult(
                x=x, f=f, fvec=merit.fvec, lam=lam, slope=slope,
                check=False, direction=p, nfev=nfev,
            )

        tmplam = _backtrack(lam, lam2, f, f2, fold, slope, first=(nfev == 1))
        lam2, f2 = lam, f
        lam = tmplam
