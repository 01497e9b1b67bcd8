r"""Utilities for ingesting JSON reaction-network definitions.

A model file holds four ordered lists (``parameters``, ``inputs``,
``species`` and ``reactions``) plus an optional ``variants`` table.  Entries
tagged with a ``variant`` only join the network when that variant is
requested, which keeps alternative binding/competition pathways in the data
file instead of in commented-out code.

Parameter values may be numbers or short arithmetic strings such as
``"1/2400"``; reactant and product lists accept species names (unit
coefficient), ``[name, coefficient]`` pairs, or ``{name: coefficient}``
mappings.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

from .errors import ModelError
from .expressions import parse_expression
from .network import NetworkBuilder, ReactionNetwork

logger = logging.getLogger(__name__)

MODELS_DIR = Path(__file__).resolve().parent / "models"

_REQUIRED_SECTIONS = ("species", "reactions")


def bundled_model_path(name: str) -> Path:
    """Return the path of a model shipped under ``src/crn/models``."""

    candidate = MODELS_DIR / (name if name.endswith(".json") else f"{name}.json")
    if not candidate.is_file():
        available = sorted(path.stem for path in MODELS_DIR.glob("*.json"))
        raise FileNotFoundError(f"Bundled model '{name}' not found; available: {available}")
    return candidate


def resolve_model_path(specifier: Union[str, Path]) -> Path:
    path = Path(specifier)
    if path.is_file():
        return path
    return bundled_model_path(str(specifier))


def _parse_value(raw: object, where: str) -> float:
    if isinstance(raw, bool):
        raise ModelError(f"Invalid numeric value {raw!r} for {where}")
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        expr = parse_expression(raw, symbols=(), where=where)
        return float(expr)
    raise ModelError(f"Invalid numeric value {raw!r} for {where}")


def _read_definition(path: Path) -> Dict[str, object]:
    try:
        with path.open("r", encoding="utf8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ModelError(f"Model file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ModelError(f"Model file {path} must contain a JSON object")
    missing = [section for section in _REQUIRED_SECTIONS if section not in data]
    if missing:
        raise ModelError(f"Model file {path} is missing sections: {missing}")
    return data


def builder_from_definition(data: Mapping[str, object]) -> NetworkBuilder:
    builder = NetworkBuilder()
    for entry in data.get("parameters", []) or []:
        name = str(entry["name"])
        builder.add_parameter(
            name,
            _parse_value(entry.get("value"), f"parameter '{name}'"),
            description=str(entry.get("description", "")),
            variant=entry.get("variant"),
        )
    for entry in data.get("inputs", []) or []:
        name = str(entry["name"])
        builder.add_input(
            name,
            minimum=_parse_value(entry["minimum"], f"input '{name}'"),
            maximum=_parse_value(entry["maximum"], f"input '{name}'"),
            half_max=_parse_value(entry["half_max"], f"input '{name}'"),
            exponent=_parse_value(entry["exponent"], f"input '{name}'"),
            variant=entry.get("variant"),
        )
    for entry in data.get("species", []) or []:
        name = str(entry["name"])
        builder.add_species(
            name,
            _parse_value(entry.get("initial", 0.0), f"species '{name}'"),
            variant=entry.get("variant"),
        )
    for entry in data.get("reactions", []) or []:
        try:
            name = str(entry["name"])
            rate = entry["rate"]
        except KeyError as exc:
            raise ModelError(f"Reaction entry {entry!r} is missing {exc}") from exc
        builder.add_reaction(
            name,
            entry.get("reactants"),
            entry.get("products"),
            rate,
            mass_action=bool(entry.get("mass_action", True)),
            guards=entry.get("guards"),
            variant=entry.get("variant"),
        )
    return builder


def load_builder(specifier: Union[str, Path]) -> NetworkBuilder:
    path = resolve_model_path(specifier)
    return builder_from_definition(_read_definition(path))


def load_network(specifier: Union[str, Path], *, variants: Optional[Iterable[str]] = None) -> ReactionNetwork:
    """Load and validate a model file (path or bundled model name)."""

    path = resolve_model_path(specifier)
    network = builder_from_definition(_read_definition(path)).build(variants=variants)
    logger.info(
        "loaded %s: %d species, %d reactions",
        path.name,
        len(network.species),
        len(network.reactions),
    )
    return network


def list_variants(specifier: Union[str, Path]) -> Dict[str, str]:
    data = _read_definition(resolve_model_path(specifier))
    described = {str(key): str(value) for key, value in (data.get("variants") or {}).items()}
    for tag in builder_from_definition(data).declared_variants:
        described.setdefault(tag, "")
    return described


__all__ = [
    "MODELS_DIR",
    "builder_from_definition",
    "bundled_model_path",
    "list_variants",
    "load_builder",
    "load_network",
    "resolve_model_path",
]
