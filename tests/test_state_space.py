from __future__ import annotations

import math

import numpy as np
import pytest

from src.crn.ctmc import CtmcGenerator
from src.crn.network import NetworkBuilder
from src.crn.state_space import explore_state_space


def test_decay_chain_matches_binomial_survival() -> None:
    generator = CtmcGenerator(NetworkBuilder().add_species("A", 3).add_reaction("decay", ["A"], [], "0.5").build())
    chain = explore_state_space(generator)

    assert chain.states.shape == (4, 1)
    assert not chain.truncated
    assert chain.absorbing == (chain.index_of([0]),)

    t = 1.3
    distribution = chain.transient(t)
    survive = math.exp(-0.5 * t)
    for n in range(4):
        expected = math.comb(3, n) * survive**n * (1.0 - survive) ** (3 - n)
        assert distribution[chain.index_of([n])] == pytest.approx(expected, abs=1e-8)
    assert distribution[chain.sink_index] == pytest.approx(0.0, abs=1e-12)
    assert chain.expected_counts(distribution) == pytest.approx([3 * survive], rel=1e-7)


def test_generator_rows_sum_to_zero() -> None:
    generator = CtmcGenerator(
        NetworkBuilder()
        .add_species("A", 0)
        .add_reaction("make", [], ["A"], "1.0")
        .add_reaction("loss", ["A"], [], "0.5")
        .build()
    )

    chain = explore_state_space(generator, max_count=2)

    assert chain.truncated
    assert chain.states.shape[0] == 3
    row_sums = np.asarray(chain.generator.sum(axis=1)).ravel()
    assert row_sums == pytest.approx(np.zeros(chain.size))
    assert chain.generator[chain.index_of([2]), chain.sink_index] == pytest.approx(1.0)


def test_max_states_redirects_to_sink() -> None:
    generator = CtmcGenerator(NetworkBuilder().add_species("A", 0).add_reaction("make", [], ["A"], "1.0").build())

    chain = explore_state_space(generator, max_states=2)

    assert chain.states.shape[0] == 2
    assert chain.truncated
    mass = chain.transient(2.0)
    assert mass.sum() == pytest.approx(1.0, abs=1e-8)
    assert mass[chain.sink_index] > 0.0
