"""Steady-state search by integrating towards an effectively infinite horizon."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import SteadyStateOptions
from .errors import ConfigError, NonConvergence, NumericsError
from .ode import OdeSystem
from .stiff_ode import integrate_to

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SteadyStateResult:
    state: np.ndarray
    time: float
    residual: float
    windows: int

    @property
    def converged_immediately(self) -> bool:
        return self.windows == 0


def steady_state_residual(system: OdeSystem, state: np.ndarray, t: float = 0.0) -> float:
    return system.residual(state, t)


def is_steady(system: OdeSystem, state: np.ndarray, options: SteadyStateOptions, t: float = 0.0) -> bool:
    """True when every ``|dx_i/dt| <= abstol + reltol * |x_i|``."""

    derivative = system.rhs(t, state)
    bound = options.abstol + options.reltol * np.abs(state)
    return bool(np.all(np.abs(derivative) <= bound))


def solve_steady_state(
    system: OdeSystem,
    y0: Optional[np.ndarray] = None,
    options: Optional[SteadyStateOptions] = None,
) -> SteadyStateResult:
    """Integrate ``system`` from ``y0`` until the derivative falls within tolerance.

    Raises :class:`NonConvergence` (with the last state, elapsed simulated
    time and residual) once ``max_horizon`` or ``max_wall_seconds`` is spent.
    """

    opts = options or SteadyStateOptions()
    state = np.array(system.initial_state() if y0 is None else y0, dtype=float, copy=True)
    if state.shape != (system.size,):
        raise ConfigError(f"Initial guess has shape {state.shape}; expected ({system.size},)")

    sparsity = system.jacobian_sparsity()
    elapsed = 0.0
    window = float(opts.initial_window)
    windows = 0
    start_wall = time.monotonic()

    while not is_steady(system, state, opts, elapsed):
        residual = steady_state_residual(system, state, elapsed)
        if elapsed >= opts.max_horizon:
            raise NonConvergence(
                f"Steady state not reached within horizon {opts.max_horizon:g}",
                last_state=state,
                elapsed_time=elapsed,
                residual=residual,
            )
        if opts.max_wall_seconds is not None and (time.monotonic() - start_wall) > opts.max_wall_seconds:
            raise NonConvergence(
                f"Steady state not reached within wall-time {opts.max_wall_seconds}s",
                last_state=state,
                elapsed_time=elapsed,
                residual=residual,
            )
        stop = min(elapsed + window, opts.max_horizon)
        try:
            state = integrate_to(system.rhs, state, elapsed, stop, opts.solver, jac_sparsity=sparsity)
        except NumericsError as exc:
            raise NumericsError(f"Steady-state integration failed after t={elapsed:g}: {exc}") from exc
        elapsed = stop
        window *= opts.growth
        windows += 1
        logger.debug("steady_state window=%d t=%.4g residual=%.3e", windows, elapsed, system.residual(state, elapsed))

    residual = steady_state_residual(system, state, elapsed)
    logger.info("steady state reached: t=%.4g windows=%d residual=%.3e", elapsed, windows, residual)
    return SteadyStateResult(state=state, time=elapsed, residual=residual, windows=windows)


__all__ = ["SteadyStateResult", "is_steady", "solve_steady_state", "steady_state_residual"]
