"""Simulate one stochastic trajectory of a reaction network."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable

from src.crn.ctmc import CtmcGenerator
from src.crn.config import parse_assignments
from src.crn.errors import CrnError
from src.crn.loader import load_network
from src.crn.ssa import simulate_ssa
from src.crn.vas_io import read_vas

LOGGER = logging.getLogger("run_ssa")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Gillespie simulation of a reaction network")
    parser.add_argument("--model", default="da_simple", help="Bundled model name or JSON path (default: da_simple)")
    parser.add_argument("--vas", type=Path, default=None, help="Read the network from a CTMC text file instead")
    parser.add_argument("--variant", action="append", default=None, help="Model variant to enable")
    parser.add_argument("--set", dest="overrides", action="append", default=None, help="Parameter override NAME=VALUE")
    parser.add_argument("--t-end", type=float, default=3600.0, help="Simulated time (default: 3600)")
    parser.add_argument("--save-interval", type=float, default=60.0, help="Save cadence (default: 60)")
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument(
        "--max-events", type=int, default=10_000_000, help="Event budget before the run is cut short (default: 1e7)"
    )
    parser.add_argument("--output", type=Path, default=None, help="Destination CSV; prints a summary when omitted")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)
    try:
        if args.vas is not None:
            network = read_vas(args.vas).network
        else:
            network = load_network(args.model, variants=args.variant)
        generator = CtmcGenerator(network, parse_assignments(args.overrides))
        result = simulate_ssa(
            generator, args.t_end, args.save_interval, seed=args.seed, max_events=args.max_events
        )
    except CrnError as exc:
        LOGGER.error("%s", exc)
        LOGGER.debug("Full exception", exc_info=True)
        return 1
    LOGGER.info("%d events, absorbed=%s, final time %g", result.events, result.absorbed, result.final_time)
    if args.output:
        result.time_course.save_csv(args.output)
        LOGGER.info("Wrote %d rows to %s", result.time_course.time.size, args.output)
    else:
        print(result.time_course.to_frame().tail())
    if result.truncated:
        LOGGER.error("Run stopped after %d events before reaching t=%g", result.events, args.t_end)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
