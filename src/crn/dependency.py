"""Target-driven dependency graphs and network trimming.

Starting from the gap between the initial counts and a target count, the
graph records which reactions must fire (and how often) to close it, then
recurses into the reactant deficits those firings leave behind.  A reaction
never appears twice on one root-to-leaf path, which bounds the depth by the
number of reactions.  The reactions reached by the graph, and the species
they touch, form a trimmed network focused on the target.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, List, Tuple

import numpy as np

from .ctmc import CtmcGenerator
from .errors import ModelError
from .network import ReactionNetwork
from .vas_io import VasTarget

logger = logging.getLogger(__name__)

ROOT_NAME = "<target>"

Requirement = Tuple[str, int]


@dataclass(frozen=True)
class DependencyNode:
    """One reaction firing ``executions`` times.

    ``requirements`` lists the signed amounts (positive: produce, negative:
    consume) that the children must supply before this node can fire.
    """

    transition: str
    executions: int
    requirements: Tuple[Requirement, ...]
    children: Tuple["DependencyNode", ...] = ()
    satisfiable: bool = True

    @property
    def is_root(self) -> bool:
        return self.transition == ROOT_NAME


@dataclass(frozen=True)
class DependencyGraph:
    target: VasTarget
    root: DependencyNode
    node_count: int

    def transitions(self) -> Tuple[str, ...]:
        """Reactions reached by the graph, unique, in depth-first order."""

        seen: Dict[str, None] = {}
        stack = [self.root]
        while stack:
            node = stack.pop()
            if not node.is_root:
                seen.setdefault(node.transition, None)
            stack.extend(reversed(node.children))
        return tuple(seen)

    def render(self) -> str:
        lines: List[str] = []

        def _visit(node: DependencyNode, depth: int) -> None:
            indent = "  " * depth
            flag = "" if node.satisfiable else " [unsatisfied]"
            lines.append(f"{indent}- {node.transition} (x{node.executions}){flag}")
            for species, amount in node.requirements:
                lines.append(f"{indent}    needs: {species} {amount:+d}")
            for child in node.children:
                _visit(child, depth + 1)

        _visit(self.root, 0)
        return "\n".join(lines) + "\n"


class _GraphBuilder:
    def __init__(self, network: ReactionNetwork, max_nodes: int):
        self.network = network
        self.species_names = network.species_names
        self.reaction_names = network.reaction_names
        # rows: reactions, columns: species
        self.updates = network.stoichiometry_matrix().T.astype(np.int64)
        self.bounds = np.zeros_like(self.updates)
        for row, reaction in enumerate(network.reactions):
            for guard in reaction.guards:
                self.bounds[row, network.species_index(guard.species)] = guard.minimum
        self.max_nodes = max_nodes
        self.count = 0

    def _deficits(self, state: np.ndarray) -> Tuple[Requirement, ...]:
        return tuple((self.species_names[idx], int(-state[idx])) for idx in np.flatnonzero(state < 0))

    def _state_after(self, row: int, executions: int, state: np.ndarray) -> np.ndarray:
        update = self.updates[row]
        bound = self.bounds[row]
        # deficits left for siblings are not inherited
        after = np.maximum(state, 0) + update * executions
        # catalysts and other untouched guards must still be present after the last firing
        held = (update + bound) != 0
        after[held] -= bound[held]
        return after

    def _candidates(
        self, requirements: Tuple[Requirement, ...], path: FrozenSet[str]
    ) -> Tuple[Dict[int, int], Dict[int, List[str]]]:
        executions: Dict[int, int] = {}
        covers: Dict[int, List[str]] = {}
        for species, amount in requirements:
            col = self.species_names.index(species)
            for row, name in enumerate(self.reaction_names):
                if name in path:
                    continue
                change = int(self.updates[row, col])
                if change == 0 or (change > 0) != (amount > 0):
                    continue
                needed = math.ceil(abs(amount) / abs(change))
                executions[row] = max(executions.get(row, 0), needed)
                covers.setdefault(row, []).append(species)
        return executions, covers

    def expand(
        self,
        name: str,
        executions: int,
        requirements: Tuple[Requirement, ...],
        state: np.ndarray,
        path: FrozenSet[str],
        depth: int,
    ) -> DependencyNode:
        self.count += 1
        if self.count > self.max_nodes:
            raise ModelError(f"Dependency graph exceeds {self.max_nodes} nodes")
        logger.debug("%s%s x%d needs %s", " " * depth, name, executions, list(requirements))
        if not requirements:
            return DependencyNode(name, executions, requirements)
        child_path = path | {name}
        planned, covers = self._candidates(requirements, child_path)
        children: List[DependencyNode] = []
        covered: Dict[str, bool] = {species: False for species, _ in requirements}
        for row, count in planned.items():
            after = self._state_after(row, count, state)
            child = self.expand(
                self.reaction_names[row],
                count,
                self._deficits(after),
                after,
                child_path,
                depth + 1,
            )
            children.append(child)
            if child.satisfiable:
                for species in covers[row]:
                    covered[species] = True
        return DependencyNode(
            transition=name,
            executions=executions,
            requirements=requirements,
            children=tuple(children),
            satisfiable=all(covered.values()),
        )


def dependency_graph(
    network: ReactionNetwork,
    target: VasTarget,
    *,
    max_nodes: int = 100_000,
) -> DependencyGraph:
    """Build the dependency graph of the reactions needed to reach ``target``.

    Raises :class:`ModelError` when the initial counts already meet the
    target or the graph grows past ``max_nodes``.
    """

    initial = CtmcGenerator(network).initial_state()
    start = int(initial[network.species_index(target.species)])
    gap = int(target.value) - start
    if gap == 0:
        raise ModelError(f"Initial state already satisfies target {target.species} = {target.value}")
    builder = _GraphBuilder(network, max_nodes)
    root = builder.expand(ROOT_NAME, abs(gap), ((target.species, gap),), initial, frozenset(), 0)
    graph = DependencyGraph(target=target, root=root, node_count=builder.count)
    logger.info(
        "dependency graph for %s = %d: %d nodes, %d reactions, satisfiable=%s",
        target.species,
        target.value,
        builder.count,
        len(graph.transitions()),
        root.satisfiable,
    )
    return graph


def trim_network(network: ReactionNetwork, graph: DependencyGraph) -> ReactionNetwork:
    """Keep only the graph's reactions and the species they touch.

    Reactions keep their declaration order.  A species survives when a kept
    reaction consumes, produces, guards or reads it in its rate, and the
    target species always survives.
    """

    keep_reactions = set(graph.transitions())
    pairs = [
        (reaction, rate)
        for reaction, rate in zip(network.reactions, network.rates)
        if reaction.name in keep_reactions
    ]
    used = {graph.target.species}
    species_names = set(network.species_names)
    for reaction, rate in pairs:
        used.update(name for name, _ in reaction.reactants)
        used.update(name for name, _ in reaction.products)
        used.update(guard.species for guard in reaction.guards)
        used.update(token for token in rate.tokens if token in species_names)
    species = tuple(entry for entry in network.species if entry.name in used)
    logger.info(
        "trimmed network to %d of %d species and %d of %d reactions",
        len(species),
        len(network.species),
        len(pairs),
        len(network.reactions),
    )
    return replace(
        network,
        species=species,
        reactions=tuple(reaction for reaction, _ in pairs),
        rates=tuple(rate for _, rate in pairs),
    )


__all__ = ["ROOT_NAME", "DependencyGraph", "DependencyNode", "dependency_graph", "trim_network"]
