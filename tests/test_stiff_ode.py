from __future__ import annotations

import math

import numpy as np
import pytest

from src.crn.config import SolverConfig
from src.crn.errors import NumericsError
from src.crn.stiff_ode import integrate_to, solve_stiff_ivp


def _make_solver() -> SolverConfig:
    return SolverConfig(method="BDF", rtol=1e-6, atol=1e-9, max_step=0.5)


def test_integrate_to_returns_initial_state_for_zero_span() -> None:
    solver = _make_solver()
    y0 = np.array([1.0, 2.0])

    result = integrate_to(lambda t, y: -y, y0, 0.5, 0.5, solver)

    assert np.allclose(result, y0)
    assert result is not y0


def test_integrate_to_matches_stiff_linear_solution() -> None:
    solver = _make_solver()
    fast_rate = 75.0
    slow_rate = 0.1
    span = 1.25
    y0 = np.array([2.0, 4.0])

    def rhs(_: float, y: np.ndarray) -> np.ndarray:
        return np.array([-fast_rate * y[0], -slow_rate * y[1]])

    sparsity = np.eye(2, dtype=bool)
    result = integrate_to(rhs, y0, 0.0, span, solver, jac_sparsity=sparsity)

    expected = np.array([y0[0] * math.exp(-fast_rate * span), y0[1] * math.exp(-slow_rate * span)])
    assert result == pytest.approx(expected, rel=1e-5, abs=1e-9)


def test_explicit_method_ignores_sparsity() -> None:
    solver = SolverConfig(method="RK45", rtol=1e-8, atol=1e-10)

    sol = solve_stiff_ivp(lambda t, y: -y, (0.0, 1.0), np.array([1.0]), solver, jac_sparsity=np.ones((1, 1)))

    assert sol.success
    assert sol.y[0, -1] == pytest.approx(math.exp(-1.0), rel=1e-6)


def test_integration_failure_raises_numerics_error() -> None:
    solver = SolverConfig(method="BDF", rtol=1e-6, atol=1e-9)

    def blow_up(_: float, y: np.ndarray) -> np.ndarray:
        return y**2

    with pytest.raises(NumericsError):
        integrate_to(blow_up, np.array([1.0]), 0.0, 10.0, solver)
