"""Print a model's reactions and ODEs as LaTeX."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable

from src.crn.loader import load_network
from src.crn.typeset import render_odes_latex, render_reactions_latex


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Typeset a reaction network as LaTeX")
    parser.add_argument("--model", default="da_simple", help="Bundled model name or JSON path (default: da_simple)")
    parser.add_argument("--variant", action="append", default=None, help="Model variant to enable")
    parser.add_argument(
        "--what",
        choices=["reactions", "odes", "both"],
        default="both",
        help="Which block(s) to render (default: both)",
    )
    parser.add_argument("--output", type=Path, default=None, help="Optional .tex destination; stdout otherwise")
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(argv)
    network = load_network(args.model, variants=args.variant)
    blocks = []
    if args.what in ("reactions", "both"):
        blocks.append(render_reactions_latex(network))
    if args.what in ("odes", "both"):
        blocks.append(render_odes_latex(network))
    text = "\n".join(blocks)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(text, encoding="utf8")
    else:
        print(text)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
