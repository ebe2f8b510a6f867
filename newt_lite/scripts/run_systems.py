from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..core.config import NewtonConfig
from ..core.newton import NewtonResult, NewtonSolver
from ..models.systems import SYSTEMS, NonlinearSystem, get_system


@dataclass
class SystemRun:
    system: NonlinearSystem
    result: NewtonResult

    @property
    def root_error(self) -> Optional[float]:
        if self.system.root is None:
            return None
        return float(np.max(np.abs(self.result.x - self.system.root)))


def run_system(system: NonlinearSystem, config: Optional[NewtonConfig] = None) -> SystemRun:
    solver = NewtonSolver(system.func, config=config)
    return SystemRun(system=system, result=solver.run(system.initial_guess()))


def write_report_dat(filename: str, runs: Sequence[SystemRun]) -> None:
    """Write one row per system:
      name, n, status, check, nit, nfev, njev, F_norm, x_1, ..., x_n
    Uses comma+space separators like the other .dat outputs.
    """
    lines = ["# name, n, status, check, nit, nfev, njev, F_norm, x...\n"]
    for r in runs:
        res = r.result
        xs = ", ".join(f"{float(v)!r}" for v in res.x)
        lines.append(
            f"{r.system.name}, {r.system.n}, {res.status.value}, {int(res.check)}, "
            f"{res.nit}, {res.nfev}, {res.njev}, {res.residual_inf!r}, {xs}\n"
        )

    with open(filename, "w", encoding="utf-8") as f:
        f.writelines(lines)


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="newt-lite - solve the benchmark nonlinear systems")
    ap.add_argument("systems", nargs="*", help=f"systems to run (default: all of {', '.join(SYSTEMS)})")
    ap.add_argument("--maxits", type=int, default=NewtonConfig.maxits)
    ap.add_argument("--tolf", type=float, default=NewtonConfig.tolf)
    ap.add_argument("--stpmx", type=float, default=NewtonConfig.stpmx)
    ap.add_argument("--dat", type=str, default=None, help="write a .dat report to this path")
    ap.add_argument("--verbose", "-v", action="store_true", help="log every Newton iteration")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s %(message)s")

    config = NewtonConfig(maxits=args.maxits, tolf=args.tolf, stpmx=args.stpmx)
    names = args.systems or list(SYSTEMS)

    runs: List[SystemRun] = []
    for name in names:
        run = run_system(get_system(name), config)
        res = run.result
        err = run.root_error
        err_s = "n/a" if err is None else f"{err:.3e}"
        print(
            f"[{name}] status={res.status.value} check={res.check} nit={res.nit} "
            f"nfev={res.nfev} ||F||_inf={res.residual_inf:.3e} root_err={err_s}"
        )
        runs.append(run)

    if args.dat:
        outdir = os.path.dirname(args.dat)
        if outdir:
            os.makedirs(outdir, exist_ok=True)
        write_report_dat(args.dat, runs)
        print(f"wrote: {args.dat}")


if __name__ == "__main__":
    main()
