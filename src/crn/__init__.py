"""Public exports for the reaction-network compiler and CTMC tooling."""

from .config import RunConfig, SolverConfig, SteadyStateOptions, load_run_config
from .ctmc import CtmcGenerator, Transition
from .dependency import DependencyGraph, DependencyNode, dependency_graph, trim_network
from .entities import Guard, HillInput, TimeCourse
from .errors import (
    ConfigError,
    CrnError,
    ModelError,
    NegativeStoichiometry,
    NoEnabledTransition,
    NonConvergence,
    NumericsError,
    UnknownSymbol,
    VasParseError,
)
from .loader import bundled_model_path, load_network
from .network import NetworkBuilder, ReactionNetwork
from .ode import OdeSystem, compile_ode
from .simulation import InductionResult, run_induction, simulate_time_course
from .ssa import SsaResult, simulate_ssa
from .state_space import ExplicitCtmc, explore_state_space
from .steady_state import SteadyStateResult, solve_steady_state
from .typeset import render_odes_latex, render_reactions_latex
from .validation import ValidationOutcome, compare_networks, render_report, validate_ctmc_model
from .vas_io import VasModel, VasTarget, read_vas, write_vas

__all__ = [
    "ConfigError",
    "CrnError",
    "CtmcGenerator",
    "DependencyGraph",
    "DependencyNode",
    "ExplicitCtmc",
    "Guard",
    "HillInput",
    "InductionResult",
    "ModelError",
    "NegativeStoichiometry",
    "NetworkBuilder",
    "NoEnabledTransition",
    "NonConvergence",
    "NumericsError",
    "OdeSystem",
    "ReactionNetwork",
    "RunConfig",
    "SolverConfig",
    "SsaResult",
    "SteadyStateOptions",
    "SteadyStateResult",
    "TimeCourse",
    "Transition",
    "UnknownSymbol",
    "ValidationOutcome",
    "VasModel",
    "VasParseError",
    "VasTarget",
    "bundled_model_path",
    "compare_networks",
    "compile_ode",
    "dependency_graph",
    "explore_state_space",
    "load_network",
    "load_run_config",
    "read_vas",
    "render_odes_latex",
    "render_reactions_latex",
    "render_report",
    "run_induction",
    "simulate_ssa",
    "simulate_time_course",
    "solve_steady_state",
    "trim_network",
    "validate_ctmc_model",
    "write_vas",
]
