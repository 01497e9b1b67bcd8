"""Core dataclasses shared across the reaction-network runtime."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd
import sympy as sp

TIME_COLUMN = "time"

Stoichiometry = Tuple[Tuple[str, int], ...]


@dataclass(frozen=True)
class SpeciesEntry:
    name: str
    initial_value: float = 0.0
    variant: Optional[str] = None


@dataclass(frozen=True)
class ParameterEntry:
    name: str
    value: float
    description: str = ""
    variant: Optional[str] = None


@dataclass(frozen=True)
class HillInput:
    """Saturating input function bounded between ``minimum`` and ``maximum``.

    Evaluates ``minimum + (maximum - minimum) * x^n / (c^n + x^n)`` where
    ``c`` is the half-max constant and ``n`` the Hill exponent.
    """

    name: str
    minimum: float
    maximum: float
    half_max: float
    exponent: float
    variant: Optional[str] = None
    denominator_base: float = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "denominator_base", self.half_max ** self.exponent)

    def __call__(self, x: float) -> float:
        # inputs below zero saturate at the lower bound
        value = max(float(x), 0.0)
        powered = value ** self.exponent
        return self.minimum + (self.maximum - self.minimum) * (powered / (self.denominator_base + powered))


@dataclass(frozen=True)
class Guard:
    """CTMC enabling condition ``count(species) >= minimum``."""

    species: str
    minimum: int = 1


@dataclass(frozen=True)
class ReactionEntry:
    name: str
    reactants: Stoichiometry
    products: Stoichiometry
    rate: str
    mass_action: bool = True
    guards: Tuple[Guard, ...] = ()
    variant: Optional[str] = None

    def net_change(self) -> Dict[str, int]:
        change: Dict[str, int] = {}
        for species, coeff in self.reactants:
            change[species] = change.get(species, 0) - coeff
        for species, coeff in self.products:
            change[species] = change.get(species, 0) + coeff
        return change

    @property
    def label(self) -> str:
        def _side(terms: Stoichiometry) -> str:
            if not terms:
                return "0"
            return " + ".join(name if coeff == 1 else f"{coeff}{name}" for name, coeff in terms)

        return f"{_side(self.reactants)} --> {_side(self.products)}"


@dataclass(frozen=True)
class CompiledExpression:
    text: str
    tokens: Tuple[str, ...]
    func: object
    sympy_expr: Optional[sp.Expr] = None

    def evaluate(self, context: Dict[str, float]) -> float:
        result = self.evaluate_raw(context)
        return float(result)

    def evaluate_raw(self, context: Dict[str, float]):
        if not self.tokens:
            return self.func()
        values = [context[token] for token in self.tokens]
        return self.func(*values)


@dataclass(frozen=True)
class TimeCourse:
    """Sampled trajectory: one row per save point, one column per species."""

    time: np.ndarray
    states: np.ndarray
    species_names: Tuple[str, ...]
    provenance: Dict[str, str] = field(default_factory=dict)

    def column(self, species: str) -> np.ndarray:
        return self.states[:, self.species_names.index(species)]

    @property
    def final_state(self) -> np.ndarray:
        return np.asarray(self.states[-1], dtype=float)

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(self.states, columns=list(self.species_names))
        frame.insert(0, TIME_COLUMN, self.time)
        if self.provenance:
            frame.attrs["provenance"] = dict(self.provenance)
        return frame

    def save_csv(self, path: Path, **to_csv_kwargs) -> None:
        """Write the trajectory, gzip-compressed when ``path`` ends in ``.gz``."""

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix == ".gz":
            to_csv_kwargs.setdefault("compression", "gzip")
        self.to_frame().to_csv(path, index=False, **to_csv_kwargs)


__all__ = [
    "TIME_COLUMN",
    "CompiledExpression",
    "Guard",
    "HillInput",
    "ParameterEntry",
    "ReactionEntry",
    "SpeciesEntry",
    "Stoichiometry",
    "TimeCourse",
]
