from __future__ import annotations

import pytest

from src.crn.ctmc import CtmcGenerator
from src.crn.dependency import ROOT_NAME, dependency_graph, trim_network
from src.crn.errors import ModelError, UnknownSymbol
from src.crn.loader import load_network
from src.crn.network import NetworkBuilder
from src.crn.vas_io import VasTarget

_CASCADE_PATH = (
    "reaction21",
    "reaction19",
    "reaction20",
    "reaction16",
    "reaction14",
    "reaction2",
    "reaction1",
    "reaction8",
    "reaction7",
    "reaction10",
    "reaction9",
    "reaction15",
    "reaction12",
    "reaction17",
)


def _chain():
    return (
        NetworkBuilder()
        .add_species("A", 0)
        .add_species("B", 0)
        .add_species("C", 0)
        .add_species("D", 0)
        .add_reaction("make_a", [], ["A"], "1.0")
        .add_reaction("pair", {"A": 2}, ["B"], "0.5")
        .add_reaction("convert", ["B"], ["C"], "0.2")
        .add_reaction("waste", ["C"], [], "0.1")
        .add_reaction("make_d", [], ["D"], "1.0")
        .build()
    )


def test_chain_graph_counts_executions() -> None:
    graph = dependency_graph(_chain(), VasTarget("C", 3))

    assert graph.transitions() == ("convert", "pair", "make_a")
    assert graph.root.transition == ROOT_NAME
    assert graph.root.requirements == (("C", 3),)
    convert = graph.root.children[0]
    assert convert.executions == 3
    assert convert.requirements == (("B", 3),)
    pair = convert.children[0]
    assert pair.executions == 3
    assert pair.requirements == (("A", 6),)
    assert pair.children[0].executions == 6
    assert graph.root.satisfiable
    assert graph.node_count == 4


def test_trim_drops_unrelated_species_and_reactions() -> None:
    network = _chain()
    trimmed = trim_network(network, dependency_graph(network, VasTarget("C", 3)))

    assert trimmed.species_names == ("A", "B", "C")
    assert trimmed.reaction_names == ("make_a", "pair", "convert")
    assert trimmed.stoichiometry_matrix().tolist() == [[1, -2, 0], [0, 1, -1], [0, 0, 1]]
    CtmcGenerator(trimmed).enabled_transitions([0, 0, 0])


def test_decreasing_target_uses_consumers() -> None:
    network = NetworkBuilder().add_species("A", 5).add_reaction("decay", ["A"], [], "1.0").build()

    graph = dependency_graph(network, VasTarget("A", 2))

    assert graph.root.requirements == (("A", -3),)
    assert graph.transitions() == ("decay",)
    assert graph.root.children[0].executions == 3


def test_target_without_producer_is_unsatisfiable() -> None:
    network = NetworkBuilder().add_species("A", 0).add_reaction("decay", ["A"], [], "1.0").build()

    graph = dependency_graph(network, VasTarget("A", 1))

    assert not graph.root.satisfiable
    assert graph.transitions() == ()
    assert "[unsatisfied]" in graph.render()
    assert trim_network(network, graph).species_names == ("A",)


def test_initial_state_meeting_target_is_rejected() -> None:
    with pytest.raises(ModelError, match="already satisfies"):
        dependency_graph(_chain(), VasTarget("D", 0))
    with pytest.raises(UnknownSymbol):
        dependency_graph(_chain(), VasTarget("Z", 1))


def test_node_budget_is_enforced() -> None:
    with pytest.raises(ModelError, match="exceeds 2 nodes"):
        dependency_graph(_chain(), VasTarget("C", 3), max_nodes=2)


def test_cascade_reporter_graph() -> None:
    network = load_network("da_simple")

    graph = dependency_graph(network, VasTarget("Y_C", 50))

    assert graph.transitions() == _CASCADE_PATH
    assert graph.root.children[0].executions == 50
    assert graph.root.satisfiable
    assert graph.node_count == 15
    rendered = graph.render().splitlines()
    assert rendered[:3] == [f"- {ROOT_NAME} (x50)", "    needs: Y_C +50", "  - reaction21 (x50)"]


def test_cascade_trim_drops_decay_and_iptg_branch() -> None:
    network = load_network("da_simple")

    trimmed = trim_network(network, dependency_graph(network, VasTarget("Y_C", 50)))

    assert "S_A" not in trimmed.species_names
    assert len(trimmed.species_names) == 13
    assert trimmed.reaction_names == tuple(name for name in network.reaction_names if name in _CASCADE_PATH)
    assert not {"reaction3", "reaction5", "reaction22", "reaction23"} & set(trimmed.reaction_names)
    assert trimmed.parameter_names == network.parameter_names
