"""Explicit builder for immutable reaction networks."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .entities import (
    CompiledExpression,
    Guard,
    HillInput,
    ParameterEntry,
    ReactionEntry,
    SpeciesEntry,
    Stoichiometry,
)
from .errors import ModelError, NegativeStoichiometry, UnknownSymbol
from .expressions import TIME_SYMBOL, compile_expression

logger = logging.getLogger(__name__)

TermsLike = Union[Mapping[str, int], Sequence[Union[str, Tuple[str, int]]], None]
GuardsLike = Union[Mapping[str, int], Sequence[Union[str, Guard, Tuple[str, int]]], None]


@dataclass(frozen=True)
class ReactionNetwork:
    """Validated species, parameters, inputs and reactions in declaration order."""

    species: Tuple[SpeciesEntry, ...]
    parameters: Tuple[ParameterEntry, ...]
    inputs: Tuple[HillInput, ...]
    reactions: Tuple[ReactionEntry, ...]
    rates: Tuple[CompiledExpression, ...]
    variants: Tuple[str, ...] = ()

    @property
    def species_names(self) -> Tuple[str, ...]:
        return tuple(entry.name for entry in self.species)

    @property
    def parameter_names(self) -> Tuple[str, ...]:
        return tuple(entry.name for entry in self.parameters)

    @property
    def reaction_names(self) -> Tuple[str, ...]:
        return tuple(entry.name for entry in self.reactions)

    def parameter_values(self) -> Dict[str, float]:
        return {entry.name: float(entry.value) for entry in self.parameters}

    def input_functions(self) -> Dict[str, HillInput]:
        return {entry.name: entry for entry in self.inputs}

    def species_index(self, name: str) -> int:
        try:
            return self.species_names.index(name)
        except ValueError:
            raise UnknownSymbol(name, "species list") from None

    def reaction(self, name: str) -> ReactionEntry:
        for entry in self.reactions:
            if entry.name == name:
                return entry
        raise UnknownSymbol(name, "reaction list")

    def initial_state(self, overrides: Optional[Mapping[str, float]] = None) -> np.ndarray:
        state = np.array([entry.initial_value for entry in self.species], dtype=float)
        for name, value in (overrides or {}).items():
            state[self.species_index(name)] = float(value)
        return state

    def with_parameters(self, overrides: Optional[Mapping[str, float]] = None) -> "ReactionNetwork":
        """Return a copy with parameter values replaced; the reactions are shared."""

        if not overrides:
            return self
        known = set(self.parameter_names)
        for name in overrides:
            if name not in known:
                raise UnknownSymbol(name, "parameter overrides")
        parameters = tuple(
            replace(entry, value=float(overrides[entry.name])) if entry.name in overrides else entry
            for entry in self.parameters
        )
        return replace(self, parameters=parameters)

    def with_initial_values(self, overrides: Optional[Mapping[str, float]] = None) -> "ReactionNetwork":
        if not overrides:
            return self
        for name in overrides:
            self.species_index(name)
        species = tuple(
            replace(entry, initial_value=float(overrides[entry.name])) if entry.name in overrides else entry
            for entry in self.species
        )
        return replace(self, species=species)

    def stoichiometry_matrix(self) -> np.ndarray:
        """Net stoichiometry, shape ``(n_species, n_reactions)``."""

        matrix = np.zeros((len(self.species), len(self.reactions)), dtype=int)
        index = {name: idx for idx, name in enumerate(self.species_names)}
        for col, reaction in enumerate(self.reactions):
            for name, coeff in reaction.net_change().items():
                matrix[index[name], col] += coeff
        return matrix

    def reactant_matrix(self) -> np.ndarray:
        matrix = np.zeros((len(self.species), len(self.reactions)), dtype=int)
        index = {name: idx for idx, name in enumerate(self.species_names)}
        for col, reaction in enumerate(self.reactions):
            for name, coeff in reaction.reactants:
                matrix[index[name], col] += coeff
        return matrix


def _coerce_coefficient(reaction: str, species: str, raw: object) -> int:
    if isinstance(raw, bool):
        raise NegativeStoichiometry(reaction, species, raw)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise NegativeStoichiometry(reaction, species, raw) from None
    if not math.isfinite(value) or value < 0 or value != int(value):
        raise NegativeStoichiometry(reaction, species, raw)
    return int(value)


def _normalise_terms(reaction: str, terms: TermsLike) -> Stoichiometry:
    if not terms:
        return ()
    if isinstance(terms, Mapping):
        items: Iterable = terms.items()
    else:
        items = ((term, 1) if isinstance(term, str) else tuple(term) for term in terms)
    merged: Dict[str, int] = {}
    for name, raw in items:
        coeff = _coerce_coefficient(reaction, str(name), raw)
        merged[str(name)] = merged.get(str(name), 0) + coeff
    return tuple((name, coeff) for name, coeff in merged.items() if coeff > 0)


def _normalise_guards(reaction: str, guards: GuardsLike) -> Tuple[Guard, ...]:
    if not guards:
        return ()
    if isinstance(guards, Mapping):
        raw_items: Iterable = guards.items()
    else:
        raw_items = (
            (item.species, item.minimum) if isinstance(item, Guard)
            else (item, 1) if isinstance(item, str)
            else tuple(item)
            for item in guards
        )
    normalised: List[Guard] = []
    for name, minimum in raw_items:
        normalised.append(Guard(species=str(name), minimum=_coerce_coefficient(reaction, str(name), minimum)))
    return tuple(normalised)


class NetworkBuilder:
    """Collects typed declarations and validates them once in :meth:`build`."""

    def __init__(self) -> None:
        self._parameters: List[ParameterEntry] = []
        self._species: List[SpeciesEntry] = []
        self._inputs: List[HillInput] = []
        self._reactions: List[Tuple[str, TermsLike, TermsLike, str, bool, GuardsLike, Optional[str]]] = []

    def add_parameter(
        self,
        name: str,
        value: float,
        *,
        description: str = "",
        variant: Optional[str] = None,
    ) -> "NetworkBuilder":
        self._parameters.append(
            ParameterEntry(name=str(name), value=float(value), description=description, variant=variant)
        )
        return self

    def add_species(self, name: str, initial_value: float = 0.0, *, variant: Optional[str] = None) -> "NetworkBuilder":
        self._species.append(SpeciesEntry(name=str(name), initial_value=float(initial_value), variant=variant))
        return self

    def add_input(
        self,
        name: str,
        *,
        minimum: float,
        maximum: float,
        half_max: float,
        exponent: float,
        variant: Optional[str] = None,
    ) -> "NetworkBuilder":
        self._inputs.append(
            HillInput(
                name=str(name),
                minimum=float(minimum),
                maximum=float(maximum),
                half_max=float(half_max),
                exponent=float(exponent),
                variant=variant,
            )
        )
        return self

    def add_reaction(
        self,
        name: str,
        reactants: TermsLike,
        products: TermsLike,
        rate: Union[str, float],
        *,
        mass_action: bool = True,
        guards: GuardsLike = None,
        variant: Optional[str] = None,
    ) -> "NetworkBuilder":
        self._reactions.append((str(name), reactants, products, str(rate), bool(mass_action), guards, variant))
        return self

    @property
    def declared_variants(self) -> Tuple[str, ...]:
        tags = [entry.variant for entry in (*self._parameters, *self._species, *self._inputs)]
        tags.extend(item[6] for item in self._reactions)
        return tuple(sorted({tag for tag in tags if tag}))

    def build(self, variants: Optional[Iterable[str]] = None) -> ReactionNetwork:
        enabled = tuple(sorted(set(variants or ())))
        unknown = sorted(set(enabled) - set(self.declared_variants))
        if unknown:
            raise ModelError(f"Unknown model variants requested: {unknown}")

        def active(tag: Optional[str]) -> bool:
            return tag is None or tag in enabled

        parameters = tuple(entry for entry in self._parameters if active(entry.variant))
        species = tuple(entry for entry in self._species if active(entry.variant))
        inputs = tuple(entry for entry in self._inputs if active(entry.variant))
        raw_reactions = [item for item in self._reactions if active(item[6])]

        _check_names(parameters, species, inputs)
        for entry in species:
            if not math.isfinite(entry.initial_value) or entry.initial_value < 0.0:
                raise ModelError(f"Species '{entry.name}' has invalid initial value {entry.initial_value}")
        for entry in inputs:
            if entry.half_max <= 0.0 or entry.exponent <= 0.0:
                raise ModelError(f"Input '{entry.name}' needs a positive half-max constant and exponent")

        species_names = {entry.name for entry in species}
        symbols = species_names | {entry.name for entry in parameters} | {TIME_SYMBOL}
        functions = {entry.name: entry for entry in inputs}

        reactions: List[ReactionEntry] = []
        rates: List[CompiledExpression] = []
        seen: set = set()
        for name, raw_reactants, raw_products, rate, mass_action, raw_guards, variant in raw_reactions:
            if not name:
                raise ModelError("Reaction with an empty name")
            if name in seen:
                raise ModelError(f"Duplicate reaction name '{name}'")
            seen.add(name)
            reactants = _normalise_terms(name, raw_reactants)
            products = _normalise_terms(name, raw_products)
            for species_name, _ in (*reactants, *products):
                if species_name not in species_names:
                    raise UnknownSymbol(species_name, f"reaction '{name}'")
            guards = _resolve_guards(name, reactants, _normalise_guards(name, raw_guards), species_names)
            compiled = compile_expression(rate, symbols=symbols, functions=functions, where=f"reaction '{name}'")
            reactions.append(
                ReactionEntry(
                    name=name,
                    reactants=reactants,
                    products=products,
                    rate=rate,
                    mass_action=mass_action,
                    guards=guards,
                    variant=variant,
                )
            )
            rates.append(compiled)

        logger.debug(
            "built network: %d species, %d parameters, %d reactions (variants=%s)",
            len(species),
            len(parameters),
            len(reactions),
            list(enabled),
        )
        return ReactionNetwork(
            species=species,
            parameters=parameters,
            inputs=inputs,
            reactions=tuple(reactions),
            rates=tuple(rates),
            variants=enabled,
        )


def _check_names(
    parameters: Sequence[ParameterEntry],
    species: Sequence[SpeciesEntry],
    inputs: Sequence[HillInput],
) -> None:
    seen: Dict[str, str] = {}
    for kind, entries in (("parameter", parameters), ("species", species), ("input", inputs)):
        for entry in entries:
            if not entry.name:
                raise ModelError(f"Empty {kind} name")
            if entry.name == TIME_SYMBOL:
                raise ModelError(f"'{TIME_SYMBOL}' is reserved for the time variable")
            if entry.name in seen:
                raise ModelError(f"Duplicate name '{entry.name}' ({seen[entry.name]} and {kind})")
            seen[entry.name] = kind


def _resolve_guards(
    reaction: str,
    reactants: Stoichiometry,
    declared: Tuple[Guard, ...],
    species_names: set,
) -> Tuple[Guard, ...]:
    by_species: Dict[str, Guard] = {}
    for guard in declared:
        if guard.species not in species_names:
            raise UnknownSymbol(guard.species, f"guard of reaction '{reaction}'")
        by_species[guard.species] = guard
    for name, coeff in reactants:
        guard = by_species.get(name)
        if guard is None:
            by_species[name] = Guard(species=name, minimum=coeff)
        elif guard.minimum < coeff:
            raise ModelError(
                f"Guard on '{name}' in reaction '{reaction}' allows firing below its coefficient {coeff}"
            )
    reactant_order = [name for name, _ in reactants]
    ordered = [by_species[name] for name in reactant_order]
    ordered.extend(guard for name, guard in by_species.items() if name not in reactant_order)
    return tuple(ordered)


__all__ = ["NetworkBuilder", "ReactionNetwork"]
