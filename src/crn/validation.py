"""Static checks on the CTMC encoding and diffs between two networks."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .ctmc import CtmcGenerator
from .expressions import TIME_SYMBOL
from .network import ReactionNetwork
from .vas_io import VasTarget

logger = logging.getLogger(__name__)

MAX_TOTAL_UPDATE = 3
MAX_SINGLE_UPDATE = 2


@dataclass(frozen=True)
class ValidationOutcome:
    name: str
    errors: Tuple[str, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.errors


def _check_variable_names(names: Sequence[str]) -> List[str]:
    errors: List[str] = []
    empty = [idx for idx, name in enumerate(names) if not name]
    if empty:
        errors.append(f"{len(empty)} variables have empty names at indices: {empty}")
    duplicates = sorted(name for name, count in Counter(names).items() if count > 1)
    if duplicates:
        errors.append(f"Duplicate variable names found: {duplicates}")
    return errors


def _check_initial_state(generator: CtmcGenerator, target: VasTarget) -> List[str]:
    state = generator.initial_state()
    if state[generator.network.species_index(target.species)] == target.value:
        rendered = " ".join(str(int(value)) for value in state)
        return [f"Initial state [ {rendered} ] satisfies target with value {target.value}"]
    return []


def _check_update_bounds(generator: CtmcGenerator) -> List[str]:
    errors: List[str] = []
    stoichiometry = generator.network.stoichiometry_matrix()
    for col, name in enumerate(generator.transition_names):
        update = stoichiometry[:, col]
        total = int(update.sum())
        if abs(total) > MAX_TOTAL_UPDATE:
            errors.append(f"Transition {name} has an update vector with total change {total:+d}")
        if np.any(update > MAX_SINGLE_UPDATE):
            errors.append(f"Transition {name} has an update with a value > {MAX_SINGLE_UPDATE}")
    return errors


def _check_rate_constants(generator: CtmcGenerator) -> List[str]:
    errors: List[str] = []
    for name, constant in generator.rate_constants().items():
        if constant is None:
            logger.debug("rate of %s depends on state; skipped", name)
            continue
        if not constant > 0.0:
            errors.append(f"Transition {name} has a non-positive rate constant {constant!r}")
    return errors


def validate_ctmc_model(
    network: ReactionNetwork,
    overrides: Optional[Mapping[str, float]] = None,
    *,
    target: Optional[VasTarget] = None,
) -> List[ValidationOutcome]:
    """Run the structural checks in report order."""

    generator = CtmcGenerator(network, overrides)
    outcomes = [ValidationOutcome("Check Variable Names", tuple(_check_variable_names(generator.species_names)))]
    if target is not None:
        outcomes.append(
            ValidationOutcome("Check Initial State != Target", tuple(_check_initial_state(generator, target)))
        )
    outcomes.append(ValidationOutcome("Check SCK Assumption (CRNs Only)", tuple(_check_update_bounds(generator))))
    outcomes.append(ValidationOutcome("Check Rate Constant", tuple(_check_rate_constants(generator))))
    failed = [outcome.name for outcome in outcomes if not outcome.passed]
    if failed:
        logger.warning("validation failed: %s", ", ".join(failed))
    return outcomes


def render_report(outcomes: Sequence[ValidationOutcome]) -> str:
    rule = "=" * 47
    lines = [rule, "CTMC Model Validation".center(47).rstrip(), rule]
    for outcome in outcomes:
        lines.append(f"[{'PASS' if outcome.passed else 'FAIL'}]\t{outcome.name}")
        lines.extend(f"\t{error}" for error in outcome.errors)
    return "\n".join(lines) + "\n"


def compare_networks(
    a: ReactionNetwork,
    b: ReactionNetwork,
    *,
    parameters_a: Optional[Mapping[str, float]] = None,
    parameters_b: Optional[Mapping[str, float]] = None,
    rel_tol: float = 1e-12,
) -> List[str]:
    """Semantic differences between two encodings; empty when they agree.

    Rates are compared by their bound values where both sides are constant,
    otherwise by expression text.
    """

    differences: List[str] = []
    species_a = {entry.name: entry.initial_value for entry in a.species}
    species_b = {entry.name: entry.initial_value for entry in b.species}
    for name in sorted(species_a.keys() - species_b.keys()):
        differences.append(f"species {name} only in first network")
    for name in sorted(species_b.keys() - species_a.keys()):
        differences.append(f"species {name} only in second network")
    for name in sorted(species_a.keys() & species_b.keys()):
        if species_a[name] != species_b[name]:
            differences.append(f"species {name} initial value {species_a[name]!r} != {species_b[name]!r}")

    reactions_a = {entry.name: entry for entry in a.reactions}
    reactions_b = {entry.name: entry for entry in b.reactions}
    for name in sorted(reactions_a.keys() - reactions_b.keys()):
        differences.append(f"reaction {name} only in first network")
    for name in sorted(reactions_b.keys() - reactions_a.keys()):
        differences.append(f"reaction {name} only in second network")

    constants_a = _bound_rates(a, parameters_a)
    constants_b = _bound_rates(b, parameters_b)
    for name in sorted(reactions_a.keys() & reactions_b.keys()):
        left, right = reactions_a[name], reactions_b[name]
        if dict(left.reactants) != dict(right.reactants):
            differences.append(f"reaction {name} reactants {dict(left.reactants)} != {dict(right.reactants)}")
        if dict(left.products) != dict(right.products):
            differences.append(f"reaction {name} products {dict(left.products)} != {dict(right.products)}")
        if left.mass_action != right.mass_action:
            differences.append(f"reaction {name} mass_action {left.mass_action} != {right.mass_action}")
        rate_a, rate_b = constants_a[name], constants_b[name]
        if rate_a is not None and rate_b is not None:
            if abs(rate_a - rate_b) > rel_tol * max(abs(rate_a), abs(rate_b)):
                differences.append(f"reaction {name} rate {rate_a!r} != {rate_b!r}")
        elif left.rate.replace(" ", "") != right.rate.replace(" ", ""):
            differences.append(f"reaction {name} rate '{left.rate}' != '{right.rate}'")
    return differences


def _bound_rates(network: ReactionNetwork, overrides: Optional[Mapping[str, float]]):
    bound = network.with_parameters(overrides)
    species = set(bound.species_names)
    values = bound.parameter_values()
    constants = {}
    for reaction, compiled in zip(bound.reactions, bound.rates):
        if any(token in species or token == TIME_SYMBOL for token in compiled.tokens):
            constants[reaction.name] = None
        else:
            constants[reaction.name] = compiled.evaluate(values)
    return constants


__all__ = [
    "ValidationOutcome",
    "compare_networks",
    "render_report",
    "validate_ctmc_model",
]
