"""Shared stiff ODE helpers around scipy's solve_ivp."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Callable, Optional, Sequence, Tuple

import numpy as np
from scipy.integrate import solve_ivp

from .errors import NumericsError

if TYPE_CHECKING:  # pragma: no cover
    from .config import SolverConfig

StateVector = np.ndarray
RhsFn = Callable[[float, StateVector], StateVector]


def _looks_like_step_failure(message: str) -> bool:
    text = (message or "").lower()
    return ("step size" in text) or ("strictly increasing" in text)


def _solver_kwargs(solver: "SolverConfig", jac_sparsity: Optional[np.ndarray]) -> dict:
    kwargs = {"method": solver.method, "rtol": solver.rtol, "atol": solver.atol}
    # only the implicit methods accept a sparsity pattern
    if jac_sparsity is not None and solver.method in ("BDF", "Radau"):
        kwargs["jac_sparsity"] = jac_sparsity
    return kwargs


def solve_stiff_ivp(
    rhs: RhsFn,
    span: Tuple[float, float],
    y0: StateVector,
    solver: "SolverConfig",
    *,
    t_eval: Optional[Sequence[float]] = None,
    max_step: Optional[float] = None,
    jac_sparsity: Optional[np.ndarray] = None,
    allow_shrink: bool = True,
    max_attempts: int = 8,
):
    """Wrapper around solve_ivp that halves ``max_step`` after step-size failures."""

    t0 = float(span[0])
    t1 = float(span[1])
    state0 = np.asarray(y0, dtype=float)
    total_span = abs(t1 - t0)

    attempt_max = max_step
    if attempt_max is None or attempt_max <= 0.0 or not math.isfinite(attempt_max):
        cap = float(solver.max_step or 0.0)
        if cap > 0.0 and math.isfinite(cap):
            attempt_max = cap
        else:
            attempt_max = np.inf
    min_cap = max(total_span * 1e-6, 1e-12)
    kwargs = _solver_kwargs(solver, jac_sparsity)
    result = None
    for _ in range(max(int(max_attempts), 1)):
        result = solve_ivp(
            rhs,
            (t0, t1),
            state0,
            t_eval=t_eval,
            max_step=attempt_max,
            **kwargs,
        )
        if result.success or not allow_shrink:
            return result
        if not _looks_like_step_failure(result.message or ""):
            return result
        if not math.isfinite(attempt_max):
            attempt_max = total_span
        attempt_max = max(attempt_max * 0.5, min_cap)
    return result


def integrate_to(
    rhs: RhsFn,
    y0: StateVector,
    t0: float,
    t1: float,
    solver: "SolverConfig",
    *,
    jac_sparsity: Optional[np.ndarray] = None,
) -> StateVector:
    """Integrate y' = rhs(t, y) from ``t0`` to ``t1`` and return the final state."""
    start = float(t0)
    stop = float(t1)
    state0 = np.array(y0, dtype=float, copy=True)
    if stop - start <= 0.0 or state0.size == 0:
        return state0

    sol = solve_stiff_ivp(rhs, (start, stop), state0, solver, jac_sparsity=jac_sparsity)
    if not sol.success or not sol.y.size:
        raise NumericsError(f"Stiff ODE integration failed between t={start:g} and t={stop:g}: {sol.message}")
    return np.asarray(sol.y[:, -1], dtype=float)


__all__ = ["integrate_to", "solve_stiff_ivp"]
