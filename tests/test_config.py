"""Tests for run configuration loading."""

from pathlib import Path

import pytest

from epbd.config import RunConfig, load_run_config, run_config_from_dict
from epbd.core.averaging import AveragingPolicy
from epbd.core.factors import FactorDefaults, RenNren


def test_load_run_config(data_dir):
    # Act
    config = load_run_config(data_dir / "scenario.yaml")

    # Assert
    assert config.reference_area == 200.0
    assert config.k_exp == 0.0
    assert config.averaging is AveragingPolicy.PRODUCTION_WEIGHTED
    assert Path(config.ledger) == data_dir / "scenario_ledger.csv"
    assert Path(config.factors) == data_dir / "scenario_factors.csv"
    assert config.derive_factors is False


def test_defaults():
    # Act
    config = run_config_from_dict({"reference_area": 100})

    # Assert
    assert config == RunConfig(reference_area=100.0)
    assert config.parameters.averaging is AveragingPolicy.PRODUCTION_WEIGHTED


def test_averaging_policy_from_string():
    # Act
    config = run_config_from_dict({"reference_area": 100, "averaging": "simple_mean"})

    # Assert
    assert config.averaging is AveragingPolicy.SIMPLE_MEAN


def test_absolute_paths_are_kept(tmp_path):
    # Arrange
    ledger = str(tmp_path / "ledger.csv")

    # Act
    config = run_config_from_dict(
        {"reference_area": 100, "ledger": ledger, "factors": "factors.csv"},
        base_dir="/somewhere",
    )

    # Assert
    assert config.ledger == ledger
    assert Path(config.factors) == Path("/somewhere") / "factors.csv"


def test_unknown_keys_are_rejected():
    with pytest.raises(ValueError, match="Invalid run configuration"):
        run_config_from_dict({"reference_area": 100, "area": 100})


def test_missing_area_is_rejected():
    with pytest.raises(ValueError, match="Invalid run configuration"):
        run_config_from_dict({"k_exp": 0.5})


def test_invalid_k_exp_is_rejected():
    with pytest.raises(ValueError, match="k_exp must be between 0 and 1"):
        run_config_from_dict({"reference_area": 100, "k_exp": 2})


def test_config_must_be_a_mapping():
    with pytest.raises(ValueError, match="must be a mapping"):
        run_config_from_dict(["reference_area", 100])


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="Configuration file not found"):
        load_run_config(tmp_path / "run.yaml")


def test_factor_defaults_from_dict():
    # Act
    config = run_config_from_dict(
        {
            "reference_area": 100,
            "factor_defaults": {"district_heating": {"ren": 0.2, "nren": 1}},
        }
    )

    # Assert
    assert config.factor_defaults.district_heating == RenNren(0.2, 1.0)
    assert config.factor_defaults.cogen_to_grid == FactorDefaults().cogen_to_grid
    assert config.balance_environment is False
    assert config.nearby is False


def test_unknown_factor_default_is_rejected():
    with pytest.raises(ValueError, match="Invalid run configuration"):
        run_config_from_dict(
            {"reference_area": 100, "factor_defaults": {"lpg": {"ren": 0, "nren": 1}}}
        )
