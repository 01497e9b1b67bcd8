"""Two-phase induction runs: steady-state pre-solve followed by a sampled time course."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import numpy as np

from .config import RunConfig, SolverConfig
from .entities import TimeCourse
from .errors import ConfigError, NumericsError
from .loader import load_network
from .network import ReactionNetwork
from .ode import OdeSystem, compile_ode
from .steady_state import SteadyStateResult, solve_steady_state
from .stiff_ode import solve_stiff_ivp

logger = logging.getLogger(__name__)


def sample_times(t_end: float, save_interval: float, t_start: float = 0.0) -> np.ndarray:
    """Fixed-cadence save points from ``t_start`` to ``t_end`` inclusive."""

    if save_interval <= 0.0:
        raise ConfigError("save_interval must be positive")
    if t_end < t_start:
        raise ConfigError("t_end must not precede t_start")
    count = int(np.floor((t_end - t_start) / save_interval + 1e-9))
    times = t_start + save_interval * np.arange(count + 1, dtype=float)
    if times[-1] < t_end - 1e-9 * max(1.0, abs(t_end)):
        times = np.append(times, t_end)
    else:
        times[-1] = min(times[-1], t_end)
    return times


def simulate_time_course(
    system: OdeSystem,
    y0: np.ndarray,
    t_end: float,
    save_interval: float,
    solver: Optional[SolverConfig] = None,
    *,
    t_start: float = 0.0,
) -> TimeCourse:
    """Integrate ``system`` and record the state every ``save_interval``."""

    solver = solver or SolverConfig()
    times = sample_times(t_end, save_interval, t_start)
    state0 = np.array(y0, dtype=float, copy=True)
    if times.size == 1:
        return TimeCourse(time=times, states=state0[None, :], species_names=system.species_names)
    sol = solve_stiff_ivp(
        system.rhs,
        (float(times[0]), float(times[-1])),
        state0,
        solver,
        t_eval=times,
        jac_sparsity=system.jacobian_sparsity(),
    )
    if not sol.success:
        last_time = float(sol.t[-1]) if sol.t.size else float(times[0])
        last_state = sol.y[:, -1].tolist() if sol.y.size else state0.tolist()
        raise NumericsError(f"Integration failed at t={last_time:g} (state={last_state}): {sol.message}")
    logger.info("time course: %d samples over [%g, %g]", times.size, times[0], times[-1])
    return TimeCourse(
        time=np.asarray(sol.t, dtype=float),
        states=np.asarray(sol.y.T, dtype=float),
        species_names=system.species_names,
    )


@dataclass(frozen=True)
class InductionResult:
    steady_state: SteadyStateResult
    time_course: TimeCourse
    config: RunConfig


def run_induction(config: Optional[RunConfig] = None, network: Optional[ReactionNetwork] = None) -> InductionResult:
    """Phase 1: steady state under ``pre_overrides``; phase 2: sampled run under ``run_overrides``."""

    config = config or RunConfig()
    if network is None:
        network = load_network(config.model, variants=config.variants)

    pre_system = compile_ode(network, config.pre_overrides)
    y0 = pre_system.initial_state(config.initial_overrides)
    logger.info("phase 1: steady state with overrides %s", dict(config.pre_overrides))
    steady = solve_steady_state(pre_system, y0, config.steady_state)

    run_system = compile_ode(network, config.run_overrides)
    logger.info(
        "phase 2: time course to t=%g every %g with overrides %s",
        config.t_end,
        config.save_interval,
        dict(config.run_overrides),
    )
    course = simulate_time_course(run_system, steady.state, config.t_end, config.save_interval, config.solver)
    provenance: Dict[str, str] = {
        "model": config.model,
        "variants": ",".join(config.variants),
        "run_config_sha256": config.identity(),
        "steady_state_time": f"{steady.time:.6g}",
    }
    course = TimeCourse(
        time=course.time,
        states=course.states,
        species_names=course.species_names,
        provenance=provenance,
    )
    if config.output:
        write_time_course(course, Path(config.output))
    return InductionResult(steady_state=steady, time_course=course, config=config)


def write_time_course(course: TimeCourse, path: Path) -> Path:
    course.save_csv(path)
    logger.info("wrote %d rows to %s", course.time.size, path)
    return path


__all__ = [
    "InductionResult",
    "run_induction",
    "sample_times",
    "simulate_time_course",
    "write_time_course",
]
