from __future__ import annotations

from src.crn.loader import load_network
from src.crn.network import NetworkBuilder
from src.crn.validation import _check_variable_names, compare_networks, render_report, validate_ctmc_model
from src.crn.vas_io import VasTarget


def test_bundled_cascade_passes_every_check() -> None:
    outcomes = validate_ctmc_model(load_network("da_simple"))

    assert [outcome.name for outcome in outcomes] == [
        "Check Variable Names",
        "Check SCK Assumption (CRNs Only)",
        "Check Rate Constant",
    ]
    assert all(outcome.passed for outcome in outcomes)
    assert "[PASS]\tCheck Rate Constant" in render_report(outcomes)


def test_large_updates_and_zero_rates_fail() -> None:
    network = (
        NetworkBuilder()
        .add_parameter("k", 0.0)
        .add_species("A", 4)
        .add_species("B", 0)
        .add_reaction("burst", ["A"], {"A": 1, "B": 3}, "1.0")
        .add_reaction("crash", {"A": 4}, [], "k")
        .build()
    )

    outcomes = {outcome.name: outcome for outcome in validate_ctmc_model(network)}

    sck = outcomes["Check SCK Assumption (CRNs Only)"]
    assert any("burst" in error and "> 2" in error for error in sck.errors)
    assert any("crash" in error and "total change -4" in error for error in sck.errors)
    assert outcomes["Check Rate Constant"].errors == ("Transition crash has a non-positive rate constant 0.0",)
    report = render_report(list(outcomes.values()))
    assert "[FAIL]\tCheck SCK Assumption (CRNs Only)" in report


def test_initial_state_matching_target_fails() -> None:
    network = load_network("da_simple")

    outcomes = validate_ctmc_model(network, target=VasTarget("D_A", 40))

    check = next(outcome for outcome in outcomes if outcome.name == "Check Initial State != Target")
    assert not check.passed


def test_variable_name_check_reports_empty_and_duplicates() -> None:
    errors = _check_variable_names(["A", "", "A"])

    assert errors[0].startswith("1 variables have empty names at indices: [1]")
    assert errors[1] == "Duplicate variable names found: ['A']"


def test_compare_networks_lists_differences() -> None:
    base = load_network("da_simple")
    changed = base.with_initial_values({"D_A": 41})

    differences = compare_networks(base, changed)
    assert differences == ["species D_A initial value 40.0 != 41.0"]

    faster = compare_networks(base, base, parameters_b={"k_crF": 0.002})
    assert any(item.startswith("reaction reaction7 rate") for item in faster)
    assert any(item.startswith("reaction reaction14 rate") for item in faster)

    extended = compare_networks(base, load_network("da_simple", variants=["ap_guide"]))
    assert "species g_Ap only in second network" in extended
    assert "reaction ap_form only in second network" in extended
