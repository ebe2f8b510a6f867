"""
Example: merit-function history of the globally convergent Newton solver.

Solves a few benchmark systems and plots m(x_k) = 0.5*|F(x_k)|^2 against the
iteration number on a log scale. Quadratic convergence shows up as the
steepening tail of each curve; the Rosenbrock run starts with several damped
(lam < 1) steps before the full Newton step is accepted.

Run:
  python -m newt_lite.examples.example_convergence_history [outdir]
"""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

# Non-interactive backend for batch runs
import matplotlib
matplotlib.use("Agg")  # noqa: E402
import matplotlib.pyplot as plt  # noqa: E402

from newt_lite.core.newton import NewtonSolver
from newt_lite.models.systems import get_system


NAMES = ["sqrt2", "quadratic_2d", "rosenbrock", "broyden_tridiagonal"]


def main() -> None:
    outdir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(".")
    outdir.mkdir(parents=True, exist_ok=True)

    plt.figure()
    for name in NAMES:
        system = get_system(name)
        res = NewtonSolver(system.func).run(system.initial_guess())
        print(f"{name}: status={res.status.value} nit={res.nit} x={res.x}")

        hist = np.asarray(res.merit_history, dtype=float)
        # exact zeros would vanish from a log plot
        hist = np.maximum(hist, np.finfo(float).tiny)
        plt.semilogy(np.arange(hist.size), hist, marker="o", label=name)

    plt.xlabel("iteration")
    plt.ylabel(r"$\frac{1}{2}|F(x_k)|^2$")
    plt.title("Newton-Raphson with line search: merit history")
    plt.grid(True)
    plt.legend()
    figpath = outdir / "newton_convergence_history.png"
    plt.savefig(figpath, dpi=200, bbox_inches="tight")
    plt.close()
    print(f"saved: {figpath}")


if __name__ == "__main__":
    main()
