from __future__ import annotations

import math

import numpy as np
import pytest

from src.crn.config import SolverConfig
from src.crn.loader import load_network
from src.crn.network import NetworkBuilder
from src.crn.ode import compile_ode
from src.crn.simulation import simulate_time_course

_TIGHT = SolverConfig(method="BDF", rtol=1e-9, atol=1e-12)


def test_first_order_decay_matches_closed_form() -> None:
    network = NetworkBuilder().add_parameter("k", 0.3).add_species("A", 5).add_reaction("decay", ["A"], [], "k").build()
    system = compile_ode(network)

    course = simulate_time_course(system, system.initial_state(), 10.0, 1.0, _TIGHT)

    expected = 5.0 * np.exp(-0.3 * course.time)
    assert course.column("A") == pytest.approx(expected, rel=1e-6)


def test_zeroth_order_production_is_linear() -> None:
    network = NetworkBuilder().add_parameter("k", 2.0).add_species("A", 0).add_reaction("make", [], ["A"], "k").build()
    system = compile_ode(network)

    assert system.rhs(0.0, np.array([123.0])) == pytest.approx([2.0])
    course = simulate_time_course(system, system.initial_state(), 5.0, 1.0, _TIGHT)
    assert course.column("A") == pytest.approx(2.0 * course.time, abs=1e-6)


def test_mass_action_uses_coefficient_powers() -> None:
    network = (
        NetworkBuilder()
        .add_species("A", 0)
        .add_species("B", 0)
        .add_reaction("dimer", {"A": 2}, ["B"], "0.5")
        .build()
    )
    system = compile_ode(network)

    assert system.rhs(0.0, np.array([3.0, 0.0])) == pytest.approx([-9.0, 4.5])


def test_hill_input_boundaries_are_exact() -> None:
    dtet = load_network("da_simple").input_functions()["dtet"]

    assert dtet(0.0) == 0.0000931
    assert dtet(13.0) == 0.0000931 + (0.046 - 0.0000931) * 0.5
    assert dtet(1e6) == pytest.approx(0.046, rel=1e-9)


def test_induced_guide_rate_follows_override() -> None:
    network = load_network("da_simple")
    dtac = network.input_functions()["dtac"]

    off = compile_ode(network).rate_constants()["reaction5"]
    on = compile_ode(network, {"s_A": 1000}).rate_constants()["reaction5"]

    assert off == pytest.approx(dtac(0.0))
    assert on == pytest.approx(dtac(1000.0))
    assert on > off


def test_binding_pairs_are_conserved() -> None:
    network = load_network("da_simple")
    system = compile_ode(network)
    rng = np.random.default_rng(1)
    state = rng.uniform(0.0, 50.0, size=system.size)

    derivative = system.rhs(0.0, state)
    idx = network.species_index

    assert derivative[idx("D_A")] + derivative[idx("C_A_An")] == pytest.approx(0.0, abs=1e-12)
    assert derivative[idx("D_C")] + derivative[idx("C_C_Cp")] == pytest.approx(0.0, abs=1e-12)


def test_binding_reactions_alone_conserve_complex_plus_free_guide() -> None:
    network = (
        NetworkBuilder()
        .add_parameter("k_crB", 0.0000483)
        .add_parameter("k_crunB", 1 / 2400)
        .add_species("c_An", 30)
        .add_species("D_A", 40)
        .add_species("C_A_An", 0)
        .add_reaction("reaction9", ["c_An", "D_A"], ["C_A_An"], "k_crB")
        .add_reaction("reaction10", ["C_A_An"], ["c_An", "D_A"], "k_crunB")
        .build()
    )
    system = compile_ode(network)

    course = simulate_time_course(system, system.initial_state(), 3600.0, 600.0, _TIGHT)

    assert course.column("c_An") + course.column("C_A_An") == pytest.approx(np.full(course.time.size, 30.0))
    assert course.column("D_A") + course.column("C_A_An") == pytest.approx(np.full(course.time.size, 40.0))


def test_state_dependent_rate_is_reevaluated() -> None:
    network = (
        NetworkBuilder()
        .add_species("A", 4)
        .add_reaction("custom", [], ["A"], "A/2", mass_action=False)
        .build()
    )
    system = compile_ode(network)

    assert system.rate_constants() == {"custom": None}
    assert system.rhs(0.0, np.array([4.0])) == pytest.approx([2.0])
    assert math.isclose(system.residual(np.array([6.0])), 3.0)


def test_jacobian_sparsity_tracks_reactants() -> None:
    network = load_network("da_simple")
    pattern = compile_ode(network).jacobian_sparsity()
    idx = network.species_index

    assert pattern[idx("c_An"), idx("d")]
    assert pattern[idx("md"), idx("G_d")]
    assert not pattern[idx("Y_C"), idx("G_d")]


def test_dtac_boundaries() -> None:
    dtac = load_network("da_simple").input_functions()["dtac"]

    assert dtac(0.0) == 0.0000912
    assert dtac(140.6) == 0.0000912 + (0.0627 - 0.0000912) * 0.5
    assert dtac(1e9) == pytest.approx(0.0627, rel=1e-9)
