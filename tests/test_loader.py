from __future__ import annotations

import json

import pytest

from src.crn.errors import ModelError
from src.crn.loader import bundled_model_path, list_variants, load_network


def test_bundled_model_loads_in_declaration_order() -> None:
    network = load_network("da_simple")

    assert len(network.species) == 14
    assert network.species_names[:3] == ("G_d", "md", "d")
    assert network.reaction_names[0] == "reaction1"
    assert network.reaction_names[-1] == "reaction23"
    assert network.parameter_values()["gamma_p"] == pytest.approx(1 / 2400)
    assert network.initial_state()[network.species_index("D_A")] == 40.0


def test_reaction7_binds_dcas9_and_guide() -> None:
    reaction = load_network("da_simple").reaction("reaction7")

    assert reaction.reactants == (("d", 1), ("g_An", 1))
    assert reaction.products == (("c_An", 1),)
    assert reaction.rate == "k_crF"


def test_variants_extend_the_model() -> None:
    assert set(list_variants("da_simple")) == {"ap_guide", "cn_guide"}

    network = load_network("da_simple", variants=["cn_guide"])
    assert "C_C_Cp_Cn" in network.species_names
    assert "cn_dual_expression" in network.reaction_names
    assert "g_Ap" not in network.species_names


def test_missing_bundled_model_lists_available() -> None:
    with pytest.raises(FileNotFoundError, match="da_simple"):
        bundled_model_path("nope")


def test_model_file_from_path(tmp_path) -> None:
    path = tmp_path / "decay.json"
    path.write_text(
        json.dumps(
            {
                "parameters": [{"name": "k", "value": "1/4"}],
                "species": [{"name": "A", "initial": 8}],
                "reactions": [{"name": "decay", "reactants": [["A", 1]], "products": [], "rate": "k"}],
            }
        )
    )

    network = load_network(path)

    assert network.parameter_values() == {"k": 0.25}
    assert network.reaction("decay").reactants == (("A", 1),)


def test_missing_sections_are_rejected(tmp_path) -> None:
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({"species": []}))
    with pytest.raises(ModelError, match="reactions"):
        load_network(path)
