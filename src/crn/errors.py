"""Domain-specific exceptions for the reaction-network runtime."""

from __future__ import annotations

from typing import Optional

import numpy as np


class CrnError(RuntimeError):
    """Base class for reaction-network runtime errors."""


class ModelError(CrnError):
    """Raised when a model definition is malformed."""


class UnknownSymbol(ModelError):
    """Raised when a reaction or rate references an undeclared name."""

    def __init__(self, symbol: str, where: str = ""):
        self.symbol = symbol
        self.where = where
        location = f" in {where}" if where else ""
        super().__init__(f"Unknown symbol '{symbol}'{location}")


class NegativeStoichiometry(ModelError):
    """Raised when a reaction declares a negative or non-integer coefficient."""

    def __init__(self, reaction: str, species: str, coefficient: object):
        self.reaction = reaction
        self.species = species
        self.coefficient = coefficient
        super().__init__(
            f"Reaction '{reaction}' declares invalid coefficient {coefficient!r} for '{species}'"
        )


class VasParseError(ModelError):
    """Raised when a CTMC text model cannot be parsed."""

    def __init__(self, line: int, content: str, reason: str):
        self.line = line
        self.content = content
        self.reason = reason
        super().__init__(f"line {line}: {reason} ({content.strip()!r})")


class ConfigError(CrnError):
    """Raised when solver or run configuration is invalid."""


class NumericsError(CrnError):
    """Raised when the numerical solver fails."""


class NonConvergence(NumericsError):
    """Raised when the steady-state search exhausts its horizon or wall-clock budget."""

    def __init__(
        self,
        message: str,
        *,
        last_state: Optional[np.ndarray] = None,
        elapsed_time: float = 0.0,
        residual: float = float("nan"),
    ):
        self.last_state = None if last_state is None else np.array(last_state, dtype=float, copy=True)
        self.elapsed_time = float(elapsed_time)
        self.residual = float(residual)
        super().__init__(f"{message} (t={self.elapsed_time:g}, residual={self.residual:.3e})")


class NoEnabledTransition(CrnError):
    """Raised when a transition is requested from an absorbing CTMC state."""

    def __init__(self, state: np.ndarray):
        self.state = np.array(state, copy=True)
        super().__init__(f"No enabled transition in state {self.state.tolist()}")


__all__ = [
    "CrnError",
    "ModelError",
    "UnknownSymbol",
    "NegativeStoichiometry",
    "VasParseError",
    "ConfigError",
    "NumericsError",
    "NonConvergence",
    "NoEnabledTransition",
]
