"""Deterministic vector field compiled from a reaction network."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from .entities import CompiledExpression
from .expressions import TIME_SYMBOL
from .network import ReactionNetwork

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _FluxTerm:
    constant: Optional[float]
    compiled: CompiledExpression
    reactant_indices: Tuple[int, ...]
    reactant_powers: Tuple[int, ...]
    mass_action: bool


class OdeSystem:
    """``dx/dt = S · v(t, x)`` for a network with bound parameter values.

    Rates that only reference parameters (and Hill inputs of parameters) are
    folded into constants when the system is compiled; rates that reference
    species or ``t`` are re-evaluated at every call.
    """

    def __init__(self, network: ReactionNetwork, parameters: Mapping[str, float]):
        self.network = network
        self.parameters: Dict[str, float] = dict(parameters)
        self.species_names: Tuple[str, ...] = network.species_names
        self.stoichiometry = network.stoichiometry_matrix().astype(float)
        self._index = {name: idx for idx, name in enumerate(self.species_names)}
        self._dynamic_context = any(not term_is_constant for term_is_constant in self._constant_flags())
        self._terms = self._compile_terms()

    def _constant_flags(self) -> List[bool]:
        species = set(self.species_names)
        return [
            not any(token in species or token == TIME_SYMBOL for token in compiled.tokens)
            for compiled in self.network.rates
        ]

    def _compile_terms(self) -> Tuple[_FluxTerm, ...]:
        terms: List[_FluxTerm] = []
        for reaction, compiled, constant in zip(self.network.reactions, self.network.rates, self._constant_flags()):
            value = compiled.evaluate(self.parameters) if constant else None
            terms.append(
                _FluxTerm(
                    constant=value,
                    compiled=compiled,
                    reactant_indices=tuple(self._index[name] for name, _ in reaction.reactants),
                    reactant_powers=tuple(coeff for _, coeff in reaction.reactants),
                    mass_action=reaction.mass_action,
                )
            )
        return tuple(terms)

    @property
    def size(self) -> int:
        return len(self.species_names)

    def rate_constants(self) -> Dict[str, Optional[float]]:
        """Folded rate coefficients per reaction (``None`` when state-dependent)."""

        return {reaction.name: term.constant for reaction, term in zip(self.network.reactions, self._terms)}

    def _context(self, t: float, y: np.ndarray) -> Dict[str, float]:
        context = dict(self.parameters)
        context.update(zip(self.species_names, (float(value) for value in y)))
        context[TIME_SYMBOL] = float(t)
        return context

    def fluxes(self, t: float, y: np.ndarray) -> np.ndarray:
        state = np.asarray(y, dtype=float)
        context = self._context(t, state) if self._dynamic_context else None
        values = np.empty(len(self._terms), dtype=float)
        for idx, term in enumerate(self._terms):
            rate = term.constant if term.constant is not None else term.compiled.evaluate(context)
            if term.mass_action:
                for species_idx, power in zip(term.reactant_indices, term.reactant_powers):
                    rate *= state[species_idx] if power == 1 else state[species_idx] ** power
            values[idx] = rate
        return values

    def rhs(self, t: float, y: np.ndarray) -> np.ndarray:
        return self.stoichiometry @ self.fluxes(t, y)

    def __call__(self, t: float, y: np.ndarray) -> np.ndarray:
        return self.rhs(t, y)

    def initial_state(self, overrides: Optional[Mapping[str, float]] = None) -> np.ndarray:
        return self.network.initial_state(overrides)

    def residual(self, y: np.ndarray, t: float = 0.0) -> float:
        """Largest absolute derivative component at ``y``."""

        derivative = self.rhs(t, y)
        return float(np.max(np.abs(derivative))) if derivative.size else 0.0

    def jacobian_sparsity(self) -> np.ndarray:
        """Boolean ``(n, n)`` pattern: row i depends on column j."""

        pattern = np.zeros((self.size, self.size), dtype=bool)
        for col, term in enumerate(self._terms):
            targets = np.nonzero(self.stoichiometry[:, col])[0]
            sources = set(term.reactant_indices if term.mass_action else ())
            sources.update(self._index[token] for token in term.compiled.tokens if token in self._index)
            for row in targets:
                for source in sources:
                    pattern[row, source] = True
        return pattern


def compile_ode(network: ReactionNetwork, overrides: Optional[Mapping[str, float]] = None) -> OdeSystem:
    """Bind parameter values (defaults plus ``overrides``) and build the vector field."""

    bound = network.with_parameters(overrides)
    system = OdeSystem(bound, bound.parameter_values())
    logger.debug(
        "compiled ODE system: %d species, %d reactions, overrides=%s",
        system.size,
        len(bound.reactions),
        dict(overrides or {}),
    )
    return system


__all__ = ["OdeSystem", "compile_ode"]
