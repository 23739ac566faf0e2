"""Run configuration: metadata and input files of a calculation."""

import dataclasses
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dacite import Config, DaciteError, from_dict

from epbd.core.averaging import AveragingPolicy
from epbd.core.factors import FactorDefaults
from epbd.core.indicators import CalculationParameters


@dataclass(frozen=True, slots=True, kw_only=True)
class RunConfig:
    """Everything needed to run one calculation."""

    reference_area: float
    k_exp: float = 0.0
    averaging: AveragingPolicy = AveragingPolicy.PRODUCTION_WEIGHTED
    ledger: Optional[str] = None
    factors: Optional[str] = None
    derive_factors: bool = False
    factor_defaults: FactorDefaults = FactorDefaults()
    balance_environment: bool = False
    nearby: bool = False  # also report the RER for the nearby perimeter

    def __post_init__(self):
        # Raises ValueError on invalid area, k_exp or policy
        self.parameters

    @property
    def parameters(self) -> CalculationParameters:
        return CalculationParameters(
            reference_area=self.reference_area,
            k_exp=self.k_exp,
            averaging=self.averaging,
        )


def run_config_from_dict(
    data: Dict[str, Any], base_dir: Union[str, Path, None] = None
) -> RunConfig:
    """
    Build a RunConfig from plain data, resolving relative file paths
    against `base_dir`.
    """
    if not isinstance(data, dict):
        raise ValueError("Run configuration must be a mapping.")
    try:
        config = from_dict(
            RunConfig, data, config=Config(cast=[Enum, float], strict=True)
        )
    except DaciteError as e:
        raise ValueError(f"Invalid run configuration: {e}") from e
    if base_dir is None:
        return config

    base_dir = Path(base_dir)
    resolved = {}
    for name in ("ledger", "factors"):
        value = getattr(config, name)
        if value is not None and not Path(value).is_absolute():
            resolved[name] = str(base_dir / value)
    return dataclasses.replace(config, **resolved) if resolved else config


def load_run_config(path: Union[str, Path]) -> RunConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    with open(path, "r") as file:
        yaml_cfg = yaml.safe_load(file)
    return run_config_from_dict(yaml_cfg, base_dir=path.parent)
