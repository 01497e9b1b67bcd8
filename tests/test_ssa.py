from __future__ import annotations

import numpy as np

from src.crn.ctmc import CtmcGenerator
from src.crn.network import NetworkBuilder
from src.crn.ssa import simulate_ssa


def _decay(initial: int = 5) -> CtmcGenerator:
    return CtmcGenerator(NetworkBuilder().add_species("A", initial).add_reaction("decay", ["A"], [], "1.0").build())


def test_pure_decay_is_absorbed_after_every_molecule_decays() -> None:
    result = simulate_ssa(_decay(), t_end=1000.0, save_interval=10.0, seed=3)

    assert result.absorbed
    assert result.events == 5
    assert result.final_state.tolist() == [0]
    assert result.final_time < 1000.0
    assert result.time_course.states[0, 0] == 5
    assert result.time_course.states[-1, 0] == 0
    assert result.time_course.time.size == 101


def test_counts_never_increase_under_decay() -> None:
    result = simulate_ssa(_decay(50), t_end=5.0, save_interval=0.1, seed=11)

    counts = result.time_course.column("A")
    assert np.all(np.diff(counts) <= 0)
    assert np.all(counts >= 0)


def test_same_seed_gives_same_trajectory() -> None:
    generator = CtmcGenerator(
        NetworkBuilder()
        .add_species("A", 0)
        .add_reaction("make", [], ["A"], "2.0")
        .add_reaction("loss", ["A"], [], "0.1")
        .build()
    )

    first = simulate_ssa(generator, 50.0, 1.0, seed=42)
    second = simulate_ssa(generator, 50.0, 1.0, seed=42)

    assert np.array_equal(first.time_course.states, second.time_course.states)
    assert first.events == second.events
    assert not first.absorbed
    assert first.final_time == 50.0


def test_max_events_stops_the_run() -> None:
    generator = CtmcGenerator(NetworkBuilder().add_species("A", 0).add_reaction("make", [], ["A"], "100.0").build())

    result = simulate_ssa(generator, 1000.0, 10.0, seed=0, max_events=20)

    assert result.events == 20
    assert result.final_state.tolist() == [20]
    assert result.truncated
    assert not result.absorbed
    assert result.final_time < 10.0
    # only the save point at t=0 was reached before the budget ran out
    assert result.time_course.time.tolist() == [0.0]
    assert result.time_course.states.tolist() == [[0.0]]
    assert result.time_course.provenance["truncated"] == "True"
