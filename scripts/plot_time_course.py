"""Plot selected species from a saved trajectory."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from src.crn.entities import TIME_COLUMN  # noqa: E402


def plot_species(frame: pd.DataFrame, species: Sequence[str], output: Path, *, hours: bool = True) -> None:
    missing = [name for name in species if name not in frame.columns]
    if missing:
        raise SystemExit(f"Species not present in trajectory: {missing}")
    if frame.empty:
        raise SystemExit("Trajectory is empty")
    time = frame[TIME_COLUMN] / 3600.0 if hours else frame[TIME_COLUMN]
    fig, ax = plt.subplots(figsize=(6, 4))
    for name in species:
        ax.plot(time, frame[name], label=name)
    ax.set_xlabel("Time (h)" if hours else "Time (s)")
    ax.set_ylabel("Copies")
    ax.legend()
    fig.tight_layout()
    output.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output)
    plt.close(fig)


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Plot species trajectories from a saved CSV")
    parser.add_argument("input", type=Path, help="Trajectory CSV (optionally .gz)")
    parser.add_argument("--species", action="append", default=None, help="Species to plot (default: Y_C)")
    parser.add_argument("--output", type=Path, default=Path("artifacts") / "time_course.png")
    parser.add_argument("--seconds", action="store_true", help="Keep the time axis in seconds")
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(argv)
    frame = pd.read_csv(args.input)
    plot_species(frame, args.species or ["Y_C"], args.output, hours=not args.seconds)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
