"""Continuous-time Markov chain view of a reaction network.

Each reaction becomes a transition over integer species counts.  A
transition is enabled when every guard ``count(species) >= minimum`` holds;
guards default to the reactant coefficients.  Propensities reuse the rate
expressions of the deterministic model and multiply mass-action rates by
``count ** coefficient`` per reactant (independent draws, no combinatorial
``choose`` correction), so both views stay numerically comparable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .entities import CompiledExpression
from .errors import ModelError, NoEnabledTransition
from .expressions import TIME_SYMBOL
from .network import ReactionNetwork

logger = logging.getLogger(__name__)

CountVector = np.ndarray


@dataclass(frozen=True)
class Transition:
    index: int
    name: str
    propensity: float
    delta: np.ndarray


@dataclass(frozen=True)
class _Channel:
    name: str
    delta: np.ndarray
    guard_indices: np.ndarray
    guard_minimums: np.ndarray
    reactant_indices: Tuple[int, ...]
    reactant_powers: Tuple[int, ...]
    constant: Optional[float]
    mass_action: bool
    compiled: CompiledExpression


def _as_count(value: float, name: str) -> int:
    if not np.isfinite(value) or value < 0 or float(value) != int(value):
        raise ModelError(f"Species '{name}' needs a non-negative integer count for CTMC mode, got {value}")
    return int(value)


class CtmcGenerator:
    """Enabled transitions, propensities and updates for any integer state."""

    def __init__(self, network: ReactionNetwork, overrides: Optional[Mapping[str, float]] = None):
        self.network = network.with_parameters(overrides)
        self.parameters: Dict[str, float] = self.network.parameter_values()
        self.species_names: Tuple[str, ...] = self.network.species_names
        self._initial = np.array(
            [_as_count(entry.initial_value, entry.name) for entry in self.network.species],
            dtype=np.int64,
        )
        self._index = {name: idx for idx, name in enumerate(self.species_names)}
        self._channels = self._compile_channels()
        self._needs_context = any(channel.constant is None for channel in self._channels)

    def _compile_channels(self) -> Tuple[_Channel, ...]:
        stoichiometry = self.network.stoichiometry_matrix()
        channels: List[_Channel] = []
        for col, (reaction, compiled) in enumerate(zip(self.network.reactions, self.network.rates)):
            state_dependent = any(token in self._index or token == TIME_SYMBOL for token in compiled.tokens)
            constant = None if state_dependent else compiled.evaluate(self.parameters)
            channels.append(
                _Channel(
                    name=reaction.name,
                    delta=stoichiometry[:, col].astype(np.int64),
                    guard_indices=np.array([self._index[guard.species] for guard in reaction.guards], dtype=int),
                    guard_minimums=np.array([guard.minimum for guard in reaction.guards], dtype=np.int64),
                    reactant_indices=tuple(self._index[name] for name, _ in reaction.reactants),
                    reactant_powers=tuple(coeff for _, coeff in reaction.reactants),
                    constant=constant,
                    mass_action=reaction.mass_action,
                    compiled=compiled,
                )
            )
        return tuple(channels)

    @property
    def size(self) -> int:
        return len(self.species_names)

    @property
    def transition_names(self) -> Tuple[str, ...]:
        return tuple(channel.name for channel in self._channels)

    def rate_constants(self) -> Dict[str, Optional[float]]:
        """Bound rate coefficient per reaction (``None`` when state-dependent)."""

        return {channel.name: channel.constant for channel in self._channels}

    def initial_state(self, overrides: Optional[Mapping[str, int]] = None) -> CountVector:
        state = self._initial.copy()
        for name, value in (overrides or {}).items():
            state[self.network.species_index(name)] = _as_count(float(value), name)
        return state

    def _coerce(self, state: Sequence[int]) -> CountVector:
        vector = np.asarray(state, dtype=np.int64)
        if vector.shape != (self.size,):
            raise ModelError(f"State has shape {vector.shape}; expected ({self.size},)")
        return vector

    def _context(self, state: CountVector, t: float) -> Dict[str, float]:
        context = dict(self.parameters)
        context.update(zip(self.species_names, (float(value) for value in state)))
        context[TIME_SYMBOL] = float(t)
        return context

    def is_enabled(self, index: int, state: Sequence[int]) -> bool:
        channel = self._channels[index]
        vector = self._coerce(state)
        return bool(np.all(vector[channel.guard_indices] >= channel.guard_minimums))

    def _propensity(self, channel: _Channel, state: CountVector, context: Optional[Dict[str, float]]) -> float:
        rate = channel.constant if channel.constant is not None else channel.compiled.evaluate(context)
        if channel.mass_action:
            for species_idx, power in zip(channel.reactant_indices, channel.reactant_powers):
                rate *= float(state[species_idx]) ** power
        rate = float(rate)
        if rate < 0.0:
            raise ModelError(f"Reaction '{channel.name}' has negative propensity {rate!r} in state {state.tolist()}")
        return rate

    def enabled_transitions(self, state: Sequence[int], t: float = 0.0) -> Tuple[Transition, ...]:
        """Enabled transitions in declaration order; empty for an absorbing state."""

        vector = self._coerce(state)
        context = self._context(vector, t) if self._needs_context else None
        enabled: List[Transition] = []
        for idx, channel in enumerate(self._channels):
            if not np.all(vector[channel.guard_indices] >= channel.guard_minimums):
                continue
            enabled.append(
                Transition(
                    index=idx,
                    name=channel.name,
                    propensity=self._propensity(channel, vector, context),
                    delta=channel.delta.copy(),
                )
            )
        return tuple(enabled)

    def propensities(self, state: Sequence[int], t: float = 0.0) -> np.ndarray:
        """Propensity per reaction, zero where the guard fails."""

        values = np.zeros(len(self._channels), dtype=float)
        for transition in self.enabled_transitions(state, t):
            values[transition.index] = transition.propensity
        return values

    def is_absorbing(self, state: Sequence[int], t: float = 0.0) -> bool:
        return not self.enabled_transitions(state, t)

    def fire(self, state: Sequence[int], transition: Transition) -> CountVector:
        """Apply one transition's update to a copy of ``state``."""

        vector = self._coerce(state)
        if not self.is_enabled(transition.index, vector):
            raise ModelError(f"Transition '{transition.name}' is not enabled in state {vector.tolist()}")
        return vector + self._channels[transition.index].delta

    def select_transition(self, state: Sequence[int], u: float, t: float = 0.0) -> Transition:
        """Pick the transition whose cumulative propensity first exceeds ``u * total``."""

        enabled = self.enabled_transitions(state, t)
        total = float(sum(item.propensity for item in enabled))
        if not enabled or total <= 0.0:
            raise NoEnabledTransition(self._coerce(state))
        threshold = float(u) * total
        cumulative = 0.0
        for transition in enabled:
            cumulative += transition.propensity
            if threshold < cumulative:
                return transition
        return [item for item in enabled if item.propensity > 0.0][-1]


__all__ = ["CtmcGenerator", "Transition"]
