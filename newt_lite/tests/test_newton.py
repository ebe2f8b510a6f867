import logging

import numpy as np
import pytest

from newt_lite.core.config import NewtonConfig
from newt_lite.core.errors import (
    MaxIterationsExceeded,
    NonDescentDirectionError,
    SingularJacobianError,
)
from newt_lite.core.linalg import solve_dense
from newt_lite.core.newton import NewtonSolver, NewtonStatus, newt
from newt_lite.models.systems import get_system


def F_system(x: np.ndarray) -> np.ndarray:
    # A simple nonlinear 2D system with a known root at (6, 1):
    #   x^2 + y - 37 = 0
    #   x - y^2 - 5 = 0
    return np.array([x[0] ** 2 + x[1] - 37.0, x[0] - x[1] ** 2 - 5.0], dtype=float)


def F_sqrt2(x: np.ndarray) -> np.ndarray:
    return np.array([x[0] * x[0] - 2.0])


class _Counting:
    def __init__(self, func):
        self.func = func
        self.ncalls = 0

    def __call__(self, x: np.ndarray) -> np.ndarray:
        self.ncalls += 1
        return self.func(x)


def test_newton_sqrt2() -> None:
    x, check = NewtonSolver(F_sqrt2).solve(np.array([6.0]))

    assert check is False
    assert abs(x[0] - 1.41421356) < 1e-6


def test_newton_2d_fd_jacobian() -> None:
    res = NewtonSolver(F_system).run(np.array([5.0, 2.0], dtype=float))

    assert res.status is NewtonStatus.CONVERGED
    assert np.allclose(res.x, np.array([6.0, 1.0]), rtol=0.0, atol=1e-7)
    assert res.info["converged"] is True
    assert res.info["F_norm"] < 1e-8
    assert res.njev == res.nit
    # one merit value per accepted iterate, strictly decreasing
    assert len(res.merit_history) == res.nit + 1
    assert np.all(np.diff(res.merit_history) < 0.0)


def test_functional_form_matches_solver() -> None:
    x1, check1 = newt(F_system, [5.0, 2.0])
    x2, check2 = NewtonSolver(F_system).solve([5.0, 2.0])

    assert check1 is check2 is False
    assert np.array_equal(x1, x2)


def test_initial_guess_at_root_returns_immediately() -> None:
    F = _Counting(F_system)
    x0 = np.array([6.0, 1.0])

    res = NewtonSolver(F).run(x0)

    assert res.status is NewtonStatus.CONVERGED
    assert res.check is False
    assert res.nit == 0
    assert res.njev == 0
    assert res.nfev == F.ncalls == 1
    assert np.array_equal(res.x, [6.0, 1.0])
    assert np.array_equal(x0, [6.0, 1.0])


def test_initial_guess_tolerance_is_one_percent_of_tolf() -> None:
    # |F(x0)| = 5e-9 < tolf, but not < 0.01*tolf: at least one iteration runs
    res = NewtonSolver(lambda x: x - 3.0 + 5e-9).run([3.0])

    assert res.status is NewtonStatus.CONVERGED
    assert res.nit == 1
    assert res.njev == 1


def test_spurious_minimum_sets_check() -> None:
    system = get_system("spurious_minimum")

    res = NewtonSolver(system.func).run(system.initial_guess())

    assert res.status is NewtonStatus.SPURIOUS_MINIMUM
    assert res.check is True
    assert res.converged is False
    assert res.fatal is False
    assert res.nit == 1
    assert np.array_equal(res.x, [0.0, 0.0])
    assert res.residual_inf == pytest.approx(1e-6)

    x, check = newt(system.func, system.initial_guess())
    assert check is True


def test_line_search_stall_with_large_gradient_is_not_check() -> None:
    # F(x) = 1 + K|x| has no root; the forward-difference slope at 0 is K,
    # but moving left along the Newton step only increases |F|.
    K = 1.0e20

    def F(x: np.ndarray) -> np.ndarray:
        return np.array([1.0 + K * abs(x[0])])

    res = NewtonSolver(F).run([0.0])

    assert res.status is NewtonStatus.LINE_SEARCH_STALLED
    assert res.check is False
    assert res.converged is False
    assert np.array_equal(res.x, [0.0])


def test_small_relative_step_is_step_stagnant() -> None:
    # Newton on F = 1/x doubles x each step: relative change 0.5 < tolx=0.6
    res = NewtonSolver(lambda x: 1.0 / x, config=NewtonConfig(tolx=0.6)).run([1.0])

    assert res.status is NewtonStatus.STEP_STAGNANT
    assert res.nit == 1
    assert res.check is False
    assert not res.fatal
    assert res.x[0] == pytest.approx(2.0, rel=1e-6)


def test_linear_system_converges_in_few_steps() -> None:
    system = get_system("linear_3d")

    res = NewtonSolver(system.func).run(system.initial_guess())

    assert res.converged
    assert res.nit <= 3
    assert np.allclose(res.x, system.root, rtol=0.0, atol=1e-7)


def test_guess_is_overwritten_in_place() -> None:
    x_arr = np.array([6.0])
    x_list = [5.0, 2.0]

    x, _ = NewtonSolver(F_sqrt2).solve(x_arr)
    NewtonSolver(F_system).solve(x_list)

    assert np.array_equal(x_arr, x)
    assert isinstance(x_list, list)
    assert np.allclose(x_list, [6.0, 1.0], rtol=0.0, atol=1e-7)


def test_residual_returning_a_view_of_x() -> None:
    # F(x) = reversed x, root at the origin
    res = NewtonSolver(lambda v: v[::-1]).run([1.0, 2.0])

    assert res.status is NewtonStatus.CONVERGED
    assert res.nit == 1
    assert np.allclose(res.x, [0.0, 0.0], rtol=0.0, atol=1e-8)


def test_integer_array_guess_is_rejected_by_solve() -> None:
    x0 = np.array([6])

    with pytest.raises(TypeError, match="floating-point"):
        NewtonSolver(F_sqrt2).solve(x0)
    assert np.array_equal(x0, [6])

    # run() copies the guess and accepts it
    res = NewtonSolver(F_sqrt2).run(x0)
    assert res.converged
    assert abs(res.x[0] - 1.41421356) < 1e-6


def test_max_iterations_is_reported_and_raised() -> None:
    system = get_system("rosenbrock")
    solver = NewtonSolver(system.func, config=NewtonConfig(maxits=1))

    res = solver.run(system.initial_guess())
    assert res.status is NewtonStatus.MAX_ITERATIONS
    assert res.fatal
    assert isinstance(res.error, MaxIterationsExceeded)
    assert np.array_equal(res.error.x, res.x)

    x0 = system.initial_guess()
    with pytest.raises(MaxIterationsExceeded, match="maximum iterations exceeded") as exc:
        solver.solve(x0)
    # the caller still sees the last iterate
    assert np.array_equal(x0, exc.value.x)
    assert not np.array_equal(x0, system.x0)


def test_singular_jacobian_is_reported() -> None:
    def F(x: np.ndarray) -> np.ndarray:
        # x[1] never enters F: the second Jacobian column is exactly zero
        return np.array([x[0] - 1.0, x[0] - 2.0])

    res = NewtonSolver(F).run([0.0, 0.0])
    assert res.status is NewtonStatus.SINGULAR_JACOBIAN
    assert res.fatal

    with pytest.raises(SingularJacobianError):
        newt(F, [0.0, 0.0])


def test_wrong_sign_linear_solver_is_a_non_descent_error() -> None:
    def uphill(A: np.ndarray, b: np.ndarray) -> np.ndarray:
        return -solve_dense(A, b)

    res = NewtonSolver(F_system, linear_solver=uphill).run([5.0, 2.0])
    assert res.status is NewtonStatus.NON_DESCENT
    assert isinstance(res.error, NonDescentDirectionError)
    assert res.nit == 1

    with pytest.raises(NonDescentDirectionError):
        newt(F_system, [5.0, 2.0], linear_solver=uphill)


def test_custom_linear_solver_is_used() -> None:
    calls = []

    def numpy_solve(A: np.ndarray, b: np.ndarray) -> np.ndarray:
        calls.append(A.shape)
        return np.linalg.solve(A, b)

    res = NewtonSolver(F_system, linear_solver=numpy_solve).run([5.0, 2.0])

    assert res.converged
    assert calls == [(2, 2)] * res.nit


def test_residual_errors_propagate() -> None:
    def F(x: np.ndarray) -> np.ndarray:
        if x[0] > 5.5:
            raise FloatingPointError("model blew up")
        return F_system(x)

    with pytest.raises(FloatingPointError, match="model blew up"):
        NewtonSolver(F).run([5.0, 2.0])


def test_bad_inputs() -> None:
    with pytest.raises(ValueError, match="at least one"):
        NewtonSolver(F_sqrt2).run([])
    with pytest.raises(ValueError, match="1D"):
        NewtonSolver(F_sqrt2).run([[1.0]])
    with pytest.raises(ValueError, match=r"shape \(2,\)"):
        NewtonSolver(F_sqrt2).run([1.0, 2.0])
    with pytest.raises(TypeError):
        NewtonSolver("not callable")


def test_solver_is_reusable() -> None:
    solver = NewtonSolver(F_system)
    a = solver.run([5.0, 2.0])
    b = solver.run([5.0, 2.0])

    assert np.array_equal(a.x, b.x)
    assert (a.nit, a.nfev) == (b.nit, b.nfev)


def test_outcome_is_logged(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="newt_lite.core.newton")

    NewtonSolver(F_sqrt2).run([6.0])

    assert "newton it=1" in caplog.text
    assert "converged after" in caplog.text


def test_config_defaults_and_validation() -> None:
    cfg = NewtonConfig()
    assert (cfg.maxits, cfg.tolf, cfg.tolmin, cfg.stpmx, cfg.tolx) == (200, 1e-8, 1e-12, 100.0, 1e-30)
    assert (cfg.alf, cfg.eps) == (1e-4, 1e-8)

    assert cfg.replace(maxits=5).maxits == 5
    assert cfg.maxits == 200

    with pytest.raises(ValueError, match="maxits"):
        NewtonConfig(maxits=0)
    with pytest.raises(ValueError, match="maxits"):
        NewtonConfig(maxits=1.5)
    with pytest.raises(ValueError, match="maxits"):
        NewtonConfig(maxits=True)
    assert NewtonConfig(maxits=np.int64(7)).maxits == 7
    with pytest.raises(ValueError, match="tolf"):
        NewtonConfig(tolf=-1.0)
    with pytest.raises(ValueError, match="alf"):
        NewtonConfig(alf=1.5)
    with pytest.raises(ValueError, match="eps"):
        cfg.replace(eps=float("nan"))
