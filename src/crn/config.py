"""Solver and run configuration for induction experiments."""

from __future__ import annotations

import hashlib
import json
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from .errors import ConfigError

_IMPLICIT_METHODS = ("BDF", "Radau", "LSODA")
_ALL_METHODS = _IMPLICIT_METHODS + ("RK45", "RK23", "DOP853")


@dataclass(frozen=True)
class SolverConfig:
    """Configuration driving scipy's solve_ivp."""

    method: str = "BDF"
    rtol: float = 1e-6
    atol: float = 1e-9
    max_step: Optional[float] = None

    def __post_init__(self) -> None:
        if self.method not in _ALL_METHODS:
            raise ConfigError(f"Unsupported integrator '{self.method}'; expected one of {_ALL_METHODS}")
        if self.rtol <= 0.0 or self.atol <= 0.0:
            raise ConfigError("rtol and atol must be positive")
        if self.max_step is not None and self.max_step <= 0.0:
            raise ConfigError("max_step must be positive when given")

    def as_dict(self) -> Dict[str, object]:
        return {
            "method": self.method,
            "rtol": self.rtol,
            "atol": self.atol,
            "max_step": self.max_step,
        }

    def identity(self) -> str:
        payload = json.dumps(self.as_dict(), sort_keys=True)
        return hashlib.sha256(payload.encode("utf8")).hexdigest()


@dataclass(frozen=True)
class SteadyStateOptions:
    """Convergence budget for the steady-state pre-solve.

    A state is steady once every ``|dx_i/dt| <= abstol + reltol * |x_i|``.
    Integration proceeds over windows that start at ``initial_window`` and
    grow by ``growth`` until ``max_horizon`` simulated time (or
    ``max_wall_seconds``) is spent.
    """

    abstol: float = 1e-8
    reltol: float = 1e-6
    initial_window: float = 100.0
    growth: float = 2.0
    max_horizon: float = 1e12
    max_wall_seconds: Optional[float] = None
    solver: SolverConfig = field(default_factory=SolverConfig)

    def __post_init__(self) -> None:
        if self.abstol < 0.0 or self.reltol < 0.0 or (self.abstol == 0.0 and self.reltol == 0.0):
            raise ConfigError("steady-state tolerances must be non-negative and not both zero")
        if self.initial_window <= 0.0:
            raise ConfigError("initial_window must be positive")
        if self.growth < 1.0:
            raise ConfigError("growth must be >= 1")
        if not self.max_horizon > 0.0:
            raise ConfigError("max_horizon must be positive")
        if self.max_wall_seconds is not None and self.max_wall_seconds <= 0.0:
            raise ConfigError("max_wall_seconds must be positive when given")


@dataclass(frozen=True)
class RunConfig:
    """Two-phase induction experiment: steady state, then a sampled time course."""

    model: str = "da_simple"
    variants: Tuple[str, ...] = ()
    pre_overrides: Mapping[str, float] = field(default_factory=dict)
    run_overrides: Mapping[str, float] = field(default_factory=dict)
    initial_overrides: Mapping[str, float] = field(default_factory=dict)
    t_end: float = 216000.0
    save_interval: float = 60.0
    solver: SolverConfig = field(default_factory=SolverConfig)
    steady_state: SteadyStateOptions = field(default_factory=SteadyStateOptions)
    output: Optional[str] = None

    def __post_init__(self) -> None:
        if not (self.t_end > 0.0 and math.isfinite(self.t_end)):
            raise ConfigError("t_end must be a positive finite time")
        if not (0.0 < self.save_interval <= self.t_end):
            raise ConfigError("save_interval must lie in (0, t_end]")

    def as_dict(self) -> Dict[str, object]:
        return {
            "model": self.model,
            "variants": list(self.variants),
            "pre_overrides": dict(self.pre_overrides),
            "run_overrides": dict(self.run_overrides),
            "initial_overrides": dict(self.initial_overrides),
            "t_end": self.t_end,
            "save_interval": self.save_interval,
            "solver": self.solver.as_dict(),
            "steady_state": {
                key.name: getattr(self.steady_state, key.name)
                for key in fields(self.steady_state)
                if key.name != "solver"
            },
            "output": self.output,
        }

    def identity(self) -> str:
        payload = json.dumps(self.as_dict(), sort_keys=True)
        return hashlib.sha256(payload.encode("utf8")).hexdigest()


def _float_mapping(raw: object, key: str) -> Dict[str, float]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"'{key}' must be an object mapping names to numbers")
    try:
        return {str(name): float(value) for name, value in raw.items()}
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' contains a non-numeric value: {exc}") from exc


def _build(cls, raw: object, key: str, **extra):
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"'{key}' must be an object")
    allowed = {item.name for item in fields(cls)}
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise ConfigError(f"Unknown keys in '{key}': {unknown}")
    try:
        return cls(**{**raw, **extra})
    except TypeError as exc:
        raise ConfigError(f"Invalid '{key}' section: {exc}") from exc


def run_config_from_dict(data: Mapping[str, object]) -> RunConfig:
    allowed = {item.name for item in fields(RunConfig)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigError(f"Unknown run configuration keys: {unknown}")
    solver = _build(SolverConfig, data.get("solver"), "solver")
    steady_raw = dict(data.get("steady_state") or {})
    steady_solver = _build(SolverConfig, steady_raw.pop("solver", None) or solver.as_dict(), "steady_state.solver")
    steady = _build(SteadyStateOptions, steady_raw, "steady_state", solver=steady_solver)
    variants = data.get("variants") or ()
    if isinstance(variants, str):
        variants = (variants,)
    try:
        return RunConfig(
            model=str(data.get("model", "da_simple")),
            variants=tuple(str(item) for item in variants),
            pre_overrides=_float_mapping(data.get("pre_overrides"), "pre_overrides"),
            run_overrides=_float_mapping(data.get("run_overrides"), "run_overrides"),
            initial_overrides=_float_mapping(data.get("initial_overrides"), "initial_overrides"),
            t_end=float(data.get("t_end", 216000.0)),
            save_interval=float(data.get("save_interval", 60.0)),
            solver=solver,
            steady_state=steady,
            output=None if data.get("output") is None else str(data["output"]),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid run configuration: {exc}") from exc


def parse_assignments(items: Optional[Iterable[str]]) -> Dict[str, float]:
    """Turn ``["NAME=VALUE", ...]`` command-line items into an override mapping."""

    overrides: Dict[str, float] = {}
    for item in items or ():
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise ConfigError(f"Expected NAME=VALUE, got '{item}'")
        try:
            overrides[name.strip()] = float(value)
        except ValueError as exc:
            raise ConfigError(f"Override '{item}' is not numeric") from exc
    return overrides


def load_run_config(path: Union[str, Path]) -> RunConfig:
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Run configuration {path} does not exist")
    try:
        data = json.loads(path.read_text(encoding="utf8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Run configuration {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"Run configuration {path} must contain a JSON object")
    return run_config_from_dict(data)


__all__ = [
    "RunConfig",
    "SolverConfig",
    "SteadyStateOptions",
    "load_run_config",
    "parse_assignments",
    "run_config_from_dict",
]
