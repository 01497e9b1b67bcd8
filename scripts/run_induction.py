"""Two-phase induction run: steady state under the pre-induction inducer
levels, then a sampled time course after the switch.

Typical usage::

    python -m scripts.run_induction --config src/crn/models/da_simple_run.json \
        --output artifacts/data.gz

The run configuration hash is logged so saved trajectories can be matched to
the settings that produced them.
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Iterable

from src.crn.config import RunConfig, load_run_config
from src.crn.errors import CrnError
from src.crn.loader import bundled_model_path
from src.crn.simulation import run_induction

LOGGER = logging.getLogger("run_induction")

_DEFAULT_CONFIG = bundled_model_path("da_simple_run")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the two-phase induction experiment")
    parser.add_argument(
        "--config",
        type=Path,
        default=_DEFAULT_CONFIG,
        help=f"Run configuration JSON (default: {_DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Destination CSV; a .gz suffix compresses it (default: the config's output)",
    )
    parser.add_argument(
        "--variant",
        action="append",
        default=None,
        help="Model variant to enable (can be provided multiple times)",
    )
    parser.add_argument("--t-end", type=float, default=None, help="Override the run length")
    parser.add_argument("--save-interval", type=float, default=None, help="Override the save cadence")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _apply_cli_overrides(config: RunConfig, args: argparse.Namespace) -> RunConfig:
    changes = {}
    if args.output is not None:
        changes["output"] = str(args.output)
    if args.variant:
        changes["variants"] = tuple(args.variant)
    if args.t_end is not None:
        changes["t_end"] = args.t_end
    if args.save_interval is not None:
        changes["save_interval"] = args.save_interval
    return dataclasses.replace(config, **changes) if changes else config


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)
    try:
        config = _apply_cli_overrides(load_run_config(args.config), args)
        LOGGER.info("Run configuration %s (sha256=%s)", args.config, config.identity())
        result = run_induction(config)
    except CrnError as exc:
        LOGGER.error("%s", exc)
        LOGGER.debug("Full exception", exc_info=True)
        return 1
    LOGGER.info(
        "Steady state reached at t=%g; %d samples recorded",
        result.steady_state.time,
        result.time_course.time.size,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
