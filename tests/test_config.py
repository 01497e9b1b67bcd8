from __future__ import annotations

import json

import pytest

from src.crn.config import (
    RunConfig,
    SolverConfig,
    SteadyStateOptions,
    load_run_config,
    parse_assignments,
    run_config_from_dict,
)
from src.crn.errors import ConfigError
from src.crn.loader import bundled_model_path


def test_bundled_run_config_switches_inducer() -> None:
    config = load_run_config(bundled_model_path("da_simple_run"))

    assert config.pre_overrides == {"s_A": 1000.0}
    assert config.run_overrides == {"s_A": 0.0}
    assert config.t_end == 216000.0
    assert config.save_interval == 60.0
    assert config.output == "data.gz"
    assert config.steady_state.solver == config.solver


def test_unknown_keys_are_rejected(tmp_path) -> None:
    with pytest.raises(ConfigError, match="tspan"):
        run_config_from_dict({"tspan": 10})
    with pytest.raises(ConfigError, match="order"):
        run_config_from_dict({"solver": {"order": 5}})

    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_run_config(path)


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ConfigError):
        SolverConfig(method="Euler")
    with pytest.raises(ConfigError):
        SolverConfig(rtol=0.0)
    with pytest.raises(ConfigError):
        SteadyStateOptions(growth=0.5)
    with pytest.raises(ConfigError):
        RunConfig(t_end=10.0, save_interval=20.0)


def test_identity_changes_with_settings() -> None:
    base = RunConfig()

    assert base.identity() == RunConfig().identity()
    assert base.identity() != RunConfig(run_overrides={"s_A": 5.0}).identity()
    assert json.loads(json.dumps(base.as_dict()))["solver"]["method"] == "BDF"


def test_parse_assignments() -> None:
    assert parse_assignments(["s_A=1000", " I_d = 2"]) == {"s_A": 1000.0, "I_d": 2.0}
    assert parse_assignments(None) == {}
    with pytest.raises(ConfigError):
        parse_assignments(["s_A"])
    with pytest.raises(ConfigError):
        parse_assignments(["s_A=high"])
