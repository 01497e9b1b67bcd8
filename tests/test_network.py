from __future__ import annotations

import numpy as np
import pytest

from src.crn.errors import ModelError, NegativeStoichiometry, UnknownSymbol
from src.crn.network import NetworkBuilder


def _toy_builder() -> NetworkBuilder:
    return (
        NetworkBuilder()
        .add_parameter("k", 0.5)
        .add_species("A", 10)
        .add_species("B", 0)
        .add_reaction("conv", ["A"], ["B"], "k")
    )


def test_build_keeps_declaration_order_and_matrices() -> None:
    network = (
        _toy_builder()
        .add_species("C", 1)
        .add_reaction("dimer", {"A": 2}, ["C"], "k")
        .build()
    )

    assert network.species_names == ("A", "B", "C")
    assert network.reaction_names == ("conv", "dimer")
    expected = np.array([[-1, -2], [1, 0], [0, 1]])
    assert np.array_equal(network.stoichiometry_matrix(), expected)
    assert np.array_equal(network.reactant_matrix(), np.array([[1, 2], [0, 0], [0, 0]]))


def test_catalyst_has_zero_net_change_but_guard() -> None:
    network = (
        NetworkBuilder()
        .add_species("G", 1)
        .add_species("m", 0)
        .add_reaction("tx", ["G"], ["m", "G"], "2.0")
        .build()
    )

    reaction = network.reaction("tx")
    assert reaction.net_change() == {"G": 0, "m": 1}
    assert [(guard.species, guard.minimum) for guard in reaction.guards] == [("G", 1)]


def test_unknown_species_in_reaction_is_rejected() -> None:
    builder = _toy_builder().add_reaction("bad", ["Z"], [], "k")
    with pytest.raises(UnknownSymbol) as excinfo:
        builder.build()
    assert excinfo.value.symbol == "Z"


def test_unknown_rate_symbol_is_rejected() -> None:
    builder = _toy_builder().add_reaction("bad", ["A"], [], "k * missing")
    with pytest.raises(UnknownSymbol):
        builder.build()


@pytest.mark.parametrize(
    ("rate", "symbol"),
    [("k * E", "E"), ("k * pi", "pi"), ("k * I", "I"), ("k * N", "N"), ("k * S", "S"), ("gamma(A)", "gamma")],
)
def test_builtin_constants_are_not_rate_symbols(rate: str, symbol: str) -> None:
    builder = _toy_builder().add_reaction("bad", ["A"], [], rate)
    with pytest.raises(UnknownSymbol) as excinfo:
        builder.build()
    assert excinfo.value.symbol == symbol


def test_negative_coefficient_is_rejected() -> None:
    builder = _toy_builder().add_reaction("bad", {"A": -1}, [], "k")
    with pytest.raises(NegativeStoichiometry):
        builder.build()


def test_duplicate_names_are_rejected() -> None:
    with pytest.raises(ModelError):
        _toy_builder().add_species("A", 1).build()
    with pytest.raises(ModelError):
        _toy_builder().add_reaction("conv", ["B"], [], "k").build()


def test_guard_below_coefficient_is_rejected() -> None:
    builder = _toy_builder().add_reaction("pair", {"A": 2}, [], "k", guards={"A": 1})
    with pytest.raises(ModelError):
        builder.build()


def test_variants_add_tagged_entries_only_when_enabled() -> None:
    builder = _toy_builder().add_species("X", 0, variant="extra").add_reaction(
        "make_x", [], ["X"], "k", variant="extra"
    )

    base = builder.build()
    extended = builder.build(variants=["extra"])

    assert "X" not in base.species_names
    assert extended.species_names[-1] == "X"
    assert extended.reaction_names == ("conv", "make_x")
    with pytest.raises(ModelError):
        builder.build(variants=["nope"])


def test_with_parameters_rejects_unknown_override() -> None:
    network = _toy_builder().build()

    assert network.with_parameters({"k": 2.0}).parameter_values() == {"k": 2.0}
    assert network.parameter_values() == {"k": 0.5}
    with pytest.raises(UnknownSymbol):
        network.with_parameters({"q": 1.0})


def test_negative_initial_value_is_rejected() -> None:
    with pytest.raises(ModelError):
        NetworkBuilder().add_species("A", -1).build()
