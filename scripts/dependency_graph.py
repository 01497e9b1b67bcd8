"""Print the dependency graph for a target count and optionally write the trimmed model."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable

from src.crn.dependency import dependency_graph, trim_network
from src.crn.errors import CrnError
from src.crn.loader import load_network
from src.crn.vas_io import VasTarget, read_vas, write_vas

LOGGER = logging.getLogger("dependency_graph")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _parse_target(text: str) -> VasTarget:
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise ValueError(f"Expected NAME=COUNT for --target, got '{text}'")
    return VasTarget(species=name.strip(), value=int(value))


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dependency graph of the reactions needed to reach a target count")
    parser.add_argument("--model", default="da_simple", help="Bundled model name or JSON path (default: da_simple)")
    parser.add_argument("--vas", type=Path, default=None, help="Read the network (and target) from a CTMC text file")
    parser.add_argument("--variant", action="append", default=None, help="Model variant to enable")
    parser.add_argument("--target", default=None, help="Target count NAME=COUNT; defaults to the text file's target")
    parser.add_argument("--trimmed-output", type=Path, default=None, help="Write the trimmed model as CTMC text")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)
    try:
        target = _parse_target(args.target) if args.target else None
        if args.vas is not None:
            model = read_vas(args.vas)
            network = model.network
            target = target or model.target
        else:
            network = load_network(args.model, variants=args.variant)
        if target is None:
            LOGGER.error("No target given; pass --target NAME=COUNT")
            return 1
        graph = dependency_graph(network, target)
        print(graph.render(), end="")
        if args.trimmed_output:
            trimmed = trim_network(network, graph)
            write_vas(trimmed, args.trimmed_output, target=target)
            LOGGER.info("Wrote trimmed model to %s", args.trimmed_output)
    except (CrnError, ValueError) as exc:
        LOGGER.error("%s", exc)
        LOGGER.debug("Full exception", exc_info=True)
        return 1
    if not graph.root.satisfiable:
        LOGGER.warning("Target %s = %d has unsatisfied dependencies", target.species, target.value)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
