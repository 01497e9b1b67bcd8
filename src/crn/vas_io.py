"""Plain-text CTMC encoding (vector addition system files).

Each non-empty line starts with a keyword::

    species NAME [init N]          # also: variable, var / initial
    reaction NAME                  # also: transition; opens a block
    consume NAME [N]               # also: decrease, decrement
    produce NAME [N]               # also: increase, increment
    rate K                         # also: const
    target NAME = N                # also: goal, prop, check

``consume`` terms double as the enabling bounds of the transition, so a
reaction consuming ``N`` copies of a species is only enabled once at least
``N`` are present.  Lines starting with ``#`` are comments.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple, Union

from .ctmc import CtmcGenerator
from .errors import ModelError, VasParseError
from .network import NetworkBuilder, ReactionNetwork

logger = logging.getLogger(__name__)

VARIABLE_TERMS = ("species", "variable", "var")
INITIAL_TERMS = ("initial", "init")
TRANSITION_TERMS = ("reaction", "transition")
DECREASE_TERMS = ("consume", "decrease", "decrement")
INCREASE_TERMS = ("produce", "increase", "increment")
RATE_TERMS = ("rate", "const")
TARGET_TERMS = ("target", "goal", "prop", "check")


@dataclass(frozen=True)
class VasTarget:
    species: str
    value: int


@dataclass(frozen=True)
class VasModel:
    network: ReactionNetwork
    target: Optional[VasTarget] = None


@dataclass
class _TransitionBlock:
    line: int
    name: str
    consume: Dict[str, int]
    produce: Dict[str, int]
    rate: Optional[float] = None


def _parse_count(words: List[str], line: int, content: str) -> int:
    if len(words) == 2:
        return 1
    if len(words) != 3:
        raise VasParseError(line, content, "expected `<keyword> NAME [COUNT]`")
    try:
        count = int(words[2])
    except ValueError:
        raise VasParseError(line, content, f"expected integer, got `{words[2]}`") from None
    if count < 0:
        raise VasParseError(line, content, "counts must be non-negative")
    return count


def parse_vas(text: str) -> VasModel:
    """Parse a CTMC text model into a validated network."""

    species: List[Tuple[str, int]] = []
    blocks: List[_TransitionBlock] = []
    target: Optional[VasTarget] = None
    current: Optional[_TransitionBlock] = None

    for number, content in enumerate(text.splitlines(), start=1):
        words = content.split()
        if not words or words[0].startswith("#"):
            continue
        keyword = words[0]
        if keyword in VARIABLE_TERMS:
            if len(words) == 2:
                species.append((words[1], 0))
            elif len(words) == 4 and words[2] in INITIAL_TERMS:
                try:
                    species.append((words[1], int(words[3])))
                except ValueError:
                    raise VasParseError(number, content, f"invalid initial count `{words[3]}`") from None
            elif len(words) == 4:
                raise VasParseError(number, content, f"the initial value for `{words[1]}` is unspecified")
            else:
                raise VasParseError(number, content, "unexpected token")
        elif keyword in TRANSITION_TERMS:
            if len(words) != 2:
                raise VasParseError(number, content, "expected `reaction NAME`")
            current = _TransitionBlock(line=number, name=words[1], consume={}, produce={})
            blocks.append(current)
        elif keyword in DECREASE_TERMS or keyword in INCREASE_TERMS:
            if current is None:
                raise VasParseError(number, content, "update outside of a reaction block")
            count = _parse_count(words, number, content)
            side = current.consume if keyword in DECREASE_TERMS else current.produce
            if words[1] in side:
                raise VasParseError(number, content, f"`{words[1]}` updated twice in reaction `{current.name}`")
            side[words[1]] = count
        elif keyword in RATE_TERMS:
            if current is None:
                raise VasParseError(number, content, "rate outside of a reaction block")
            if len(words) != 2:
                raise VasParseError(number, content, "expected `rate VALUE`")
            try:
                current.rate = float(words[1])
            except ValueError:
                raise VasParseError(number, content, f"expected float, got `{words[1]}`") from None
        elif keyword in TARGET_TERMS:
            if target is not None:
                raise VasParseError(number, content, "only a single target line is allowed")
            if len(words) != 4:
                raise VasParseError(number, content, "expected `target NAME = VALUE`")
            try:
                target = VasTarget(species=words[1], value=int(words[3]))
            except ValueError:
                raise VasParseError(number, content, f"expected integer, got `{words[3]}`") from None
        else:
            raise VasParseError(number, content, f"unexpected token `{keyword}`")

    builder = NetworkBuilder()
    for name, initial in species:
        builder.add_species(name, initial)
    for block in blocks:
        if block.rate is None:
            raise VasParseError(block.line, f"reaction {block.name}", "reaction has no rate")
        builder.add_reaction(block.name, block.consume, block.produce, repr(block.rate))
    network = builder.build()
    if target is not None:
        network.species_index(target.species)
    logger.debug("parsed VAS model: %d species, %d reactions", len(species), len(blocks))
    return VasModel(network=network, target=target)


def read_vas(path: Union[str, Path]) -> VasModel:
    return parse_vas(Path(path).read_text(encoding="utf8"))


def format_vas(
    network: ReactionNetwork,
    overrides: Optional[Mapping[str, float]] = None,
    *,
    target: Optional[VasTarget] = None,
) -> str:
    """Render ``network`` with rates bound at the given parameter values."""

    generator = CtmcGenerator(network, overrides)
    constants = generator.rate_constants()
    lines: List[str] = []
    for name, count in zip(generator.species_names, generator.initial_state()):
        lines.append(f"species {name} init {int(count)}")
    for reaction in generator.network.reactions:
        constant = constants[reaction.name]
        if not reaction.mass_action or constant is None:
            raise ModelError(f"Reaction '{reaction.name}' has a state-dependent rate and cannot be written as VAS")
        if not math.isfinite(constant):
            raise ModelError(f"Reaction '{reaction.name}' has a non-finite rate {constant}")
        coefficients = dict(reaction.reactants)
        for guard in reaction.guards:
            if coefficients.get(guard.species) != guard.minimum:
                raise ModelError(
                    f"Guard on '{guard.species}' in reaction '{reaction.name}' differs from its consumption"
                )
        lines.append("")
        lines.append(f"reaction {reaction.name}")
        for name, coeff in reaction.reactants:
            lines.append(f"consume {name}" if coeff == 1 else f"consume {name} {coeff}")
        for name, coeff in reaction.products:
            lines.append(f"produce {name}" if coeff == 1 else f"produce {name} {coeff}")
        lines.append(f"rate {constant!r}")
    if target is not None:
        generator.network.species_index(target.species)
        lines.append("")
        lines.append(f"target {target.species} = {target.value}")
    return "\n".join(lines) + "\n"


def write_vas(
    network: ReactionNetwork,
    path: Union[str, Path],
    overrides: Optional[Mapping[str, float]] = None,
    *,
    target: Optional[VasTarget] = None,
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_vas(network, overrides, target=target), encoding="utf8")
    logger.info("wrote VAS model to %s", path)
    return path


__all__ = [
    "VasModel",
    "VasTarget",
    "format_vas",
    "parse_vas",
    "read_vas",
    "write_vas",
]
