"""Write a model's CTMC text encoding and print its validation report."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable

from src.crn.config import parse_assignments
from src.crn.errors import CrnError
from src.crn.loader import load_network
from src.crn.validation import render_report, validate_ctmc_model
from src.crn.vas_io import VasTarget, write_vas

LOGGER = logging.getLogger("export_vas")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _parse_target(text: str | None) -> VasTarget | None:
    if text is None:
        return None
    name, _, value = text.partition("=")
    return VasTarget(species=name.strip(), value=int(value))


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export a reaction network as a CTMC text model")
    parser.add_argument("--model", default="da_simple", help="Bundled model name or JSON path (default: da_simple)")
    parser.add_argument("--variant", action="append", default=None, help="Model variant to enable")
    parser.add_argument("--set", dest="overrides", action="append", default=None, help="Parameter override NAME=VALUE")
    parser.add_argument("--target", default=None, help="Optional target line, e.g. Y_C=10")
    parser.add_argument("--output", type=Path, required=True, help="Destination text file")
    parser.add_argument("--strict", action="store_true", help="Exit non-zero when a validation check fails")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)
    try:
        overrides = parse_assignments(args.overrides)
        target = _parse_target(args.target)
        network = load_network(args.model, variants=args.variant)
        write_vas(network, args.output, overrides, target=target)
        outcomes = validate_ctmc_model(network, overrides, target=target)
    except (CrnError, ValueError) as exc:
        LOGGER.error("%s", exc)
        LOGGER.debug("Full exception", exc_info=True)
        return 1
    print(render_report(outcomes), end="")
    if args.strict and not all(outcome.passed for outcome in outcomes):
        return 2
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
