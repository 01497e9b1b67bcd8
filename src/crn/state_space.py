"""Truncated explicit state-space construction for exact CTMC analysis."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import expm_multiply

from .ctmc import CtmcGenerator
from .errors import ConfigError

logger = logging.getLogger(__name__)

StateKey = Tuple[int, ...]


@dataclass(frozen=True)
class ExplicitCtmc:
    """Explored states plus a sink collecting mass that leaves the truncation.

    ``generator`` is the ``(n + 1, n + 1)`` rate matrix in CSR form; the last
    row/column is the sink, whose outgoing rates are zero.  Every row sums to
    zero.
    """

    species_names: Tuple[str, ...]
    states: np.ndarray
    generator: sparse.csr_matrix
    initial_index: int
    absorbing: Tuple[int, ...]
    truncated: bool

    @property
    def sink_index(self) -> int:
        return self.states.shape[0]

    @property
    def size(self) -> int:
        return self.states.shape[0] + 1

    def index_of(self, state: Sequence[int]) -> Optional[int]:
        key = tuple(int(value) for value in state)
        matches = np.nonzero(np.all(self.states == np.asarray(key), axis=1))[0]
        return int(matches[0]) if matches.size else None

    def initial_distribution(self) -> np.ndarray:
        distribution = np.zeros(self.size, dtype=float)
        distribution[self.initial_index] = 1.0
        return distribution

    def transient(self, t: float, distribution: Optional[np.ndarray] = None) -> np.ndarray:
        """Probability over states (sink last) at time ``t``: ``p(t) = p0 · exp(Q t)``."""

        if t < 0.0:
            raise ConfigError("transient time must be non-negative")
        p0 = self.initial_distribution() if distribution is None else np.asarray(distribution, dtype=float)
        if t == 0.0:
            return p0.copy()
        result = expm_multiply(self.generator.T.tocsr() * float(t), p0)
        return np.clip(np.asarray(result, dtype=float), 0.0, None)

    def expected_counts(self, distribution: np.ndarray) -> np.ndarray:
        """Expected species counts over the explored states (sink mass excluded)."""

        weights = np.asarray(distribution, dtype=float)[: self.sink_index]
        return weights @ self.states


def explore_state_space(
    generator: CtmcGenerator,
    *,
    max_count: Optional[int] = None,
    max_states: int = 100_000,
    initial_state: Optional[Sequence[int]] = None,
) -> ExplicitCtmc:
    """Breadth-first reachability from the initial state.

    Transitions that would push any species above ``max_count``, or reach a
    new state once ``max_states`` states exist, are redirected to the sink.
    """

    if max_count is not None and max_count < 0:
        raise ConfigError("max_count must be non-negative")
    if max_states < 1:
        raise ConfigError("max_states must be positive")

    start = generator.initial_state() if initial_state is None else np.asarray(initial_state, dtype=np.int64)
    if max_count is not None and np.any(start > max_count):
        raise ConfigError(f"initial state {start.tolist()} already exceeds max_count={max_count}")

    index: Dict[StateKey, int] = {tuple(int(v) for v in start): 0}
    ordered: List[StateKey] = [tuple(int(v) for v in start)]
    frontier = deque([0])
    rows: List[int] = []
    cols: List[int] = []
    rates: List[float] = []
    sink_edges: List[Tuple[int, float]] = []
    absorbing: List[int] = []
    truncated = False

    while frontier:
        source = frontier.popleft()
        state = np.asarray(ordered[source], dtype=np.int64)
        enabled = generator.enabled_transitions(state)
        if not enabled:
            absorbing.append(source)
            continue
        for transition in enabled:
            if transition.propensity <= 0.0:
                continue
            target_state = state + transition.delta
            if max_count is not None and np.any(target_state > max_count):
                sink_edges.append((source, transition.propensity))
                truncated = True
                continue
            key = tuple(int(v) for v in target_state)
            target = index.get(key)
            if target is None:
                if len(ordered) >= max_states:
                    sink_edges.append((source, transition.propensity))
                    truncated = True
                    continue
                target = len(ordered)
                index[key] = target
                ordered.append(key)
                frontier.append(target)
            if target == source:
                continue
            rows.append(source)
            cols.append(target)
            rates.append(transition.propensity)

    n_states = len(ordered)
    sink = n_states
    for source, rate in sink_edges:
        rows.append(source)
        cols.append(sink)
        rates.append(rate)
    off_diagonal = sparse.coo_matrix((rates, (rows, cols)), shape=(n_states + 1, n_states + 1)).tocsr()
    exit_rates = np.asarray(off_diagonal.sum(axis=1)).ravel()
    matrix = (off_diagonal - sparse.diags(exit_rates)).tocsr()
    logger.info(
        "explored %d states (%d absorbing, truncated=%s, %d transitions)",
        n_states,
        len(absorbing),
        truncated,
        off_diagonal.nnz,
    )
    return ExplicitCtmc(
        species_names=generator.species_names,
        states=np.asarray(ordered, dtype=np.int64).reshape(n_states, generator.size),
        generator=matrix,
        initial_index=0,
        absorbing=tuple(absorbing),
        truncated=truncated,
    )


__all__ = ["ExplicitCtmc", "explore_state_space"]
