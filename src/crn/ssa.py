"""Gillespie direct-method trajectories over a :class:`CtmcGenerator`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .ctmc import CtmcGenerator
from .entities import TimeCourse
from .errors import NoEnabledTransition
from .simulation import sample_times

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SsaResult:
    """One realisation.

    ``truncated`` is set when ``max_events`` ran out before ``t_end``; the
    time course then stops at the last save point actually reached.
    """

    time_course: TimeCourse
    events: int
    absorbed: bool
    final_time: float
    final_state: np.ndarray
    truncated: bool = False


def ssa_step(
    generator: CtmcGenerator,
    state: np.ndarray,
    t: float,
    rng: np.random.Generator,
):
    """Draw one holding time and transition; returns ``(dt, next_state)``.

    Raises :class:`NoEnabledTransition` when the state is absorbing.
    """

    enabled = generator.enabled_transitions(state, t)
    total = float(sum(item.propensity for item in enabled))
    if total <= 0.0:
        raise NoEnabledTransition(state)
    dt = rng.exponential(1.0 / total)
    transition = generator.select_transition(state, rng.random(), t)
    return dt, generator.fire(state, transition)


def simulate_ssa(
    generator: CtmcGenerator,
    t_end: float,
    save_interval: float,
    *,
    initial_state: Optional[Sequence[int]] = None,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    max_events: int = 10_000_000,
) -> SsaResult:
    """Run one stochastic realisation and record the state at fixed save points.

    The recorded value at each save point is the state holding at that time.
    An absorbing state ends the run early; remaining save points hold the
    absorbing state.  Exhausting ``max_events`` ends the run as truncated.
    """

    rng = rng or np.random.default_rng(seed)
    times = sample_times(t_end, save_interval)
    state = generator.initial_state() if initial_state is None else np.asarray(initial_state, dtype=np.int64)
    records = np.empty((times.size, generator.size), dtype=np.int64)
    t = 0.0
    events = 0
    absorbed = False
    truncated = False
    next_record = 0

    while next_record < times.size:
        if events >= max_events:
            truncated = True
            break
        try:
            dt, candidate = ssa_step(generator, state, t, rng)
        except NoEnabledTransition:
            absorbed = True
            break
        t_next = t + dt
        while next_record < times.size and times[next_record] < t_next:
            records[next_record] = state
            next_record += 1
        if next_record >= times.size:
            break
        state = candidate
        t = t_next
        events += 1

    if truncated:
        logger.warning(
            "ssa stopped after max_events=%d at t=%.4g; %d of %d save points recorded",
            max_events,
            t,
            next_record,
            times.size,
        )
        times = times[:next_record]
        records = records[:next_record]
    else:
        records[next_record:] = state
    if absorbed:
        logger.info("ssa reached an absorbing state at t=%.4g after %d events", t, events)
    course = TimeCourse(
        time=times,
        states=records.astype(float),
        species_names=generator.species_names,
        provenance={"events": str(events), "absorbed": str(absorbed), "truncated": str(truncated)},
    )
    return SsaResult(
        time_course=course,
        events=events,
        absorbed=absorbed,
        final_time=t if (absorbed or truncated) else float(times[-1]),
        final_state=np.array(state, copy=True),
        truncated=truncated,
    )


__all__ = ["SsaResult", "simulate_ssa", "ssa_step"]
