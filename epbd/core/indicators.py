"""Weighting of the energy balance and final EPB indicators."""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from epbd.core.averaging import AveragingPolicy, average_factor_series, source_weights
from epbd.core.balance import CarrierBalance, compute_balances
from epbd.core.carriers import Carrier, Direction, Origin, Step
from epbd.core.factors import RenNren, WeightingFactorTable, check_required_factors
from epbd.core.ledger import CarrierLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class CalculationParameters:
    """Global parameters of one calculation run."""

    reference_area: float  # m2
    k_exp: float = 0.0
    averaging: AveragingPolicy = AveragingPolicy.PRODUCTION_WEIGHTED

    def __post_init__(self):
        if not math.isfinite(self.reference_area) or self.reference_area <= 0:
            raise ValueError("Reference area must be a positive, finite number.")
        if not math.isfinite(self.k_exp) or not (0.0 <= self.k_exp <= 1.0):
            raise ValueError("k_exp must be between 0 and 1.")
        if not isinstance(self.averaging, AveragingPolicy):
            raise ValueError(f"Unknown averaging policy: {self.averaging!r}")


@dataclass(frozen=True, slots=True)
class Indicators:
    """Weighted energy per unit of reference area (kWh/m2 over the window)."""

    ren: float
    nren: float
    tot: float
    rer: float

    @classmethod
    def from_weighted_energy(cls, weighted: RenNren, reference_area: float) -> "Indicators":
        ren = weighted.ren / reference_area
        nren = weighted.nren / reference_area
        tot = ren + nren
        rer = ren / tot if tot != 0 else 0.0
        return cls(ren=ren, nren=nren, tot=tot, rer=rer)

    def as_dict(self) -> Dict[str, float]:
        return {"ren": self.ren, "nren": self.nren, "tot": self.tot, "rer": self.rer}


@dataclass(frozen=True, slots=True)
class CarrierWeightedEnergy:
    """Weighted energy of one carrier over the whole calculation window (kWh)."""

    carrier: Carrier
    delivered: RenNren
    used_onsite: RenNren
    exported: RenNren

    @property
    def net(self) -> RenNren:
        return self.delivered + self.used_onsite - self.exported


@dataclass(frozen=True, slots=True)
class EnergyBalance:
    """Complete result of a calculation run."""

    parameters: CalculationParameters
    balances: Tuple[CarrierBalance, ...]
    weighted: Tuple[CarrierWeightedEnergy, ...]
    weighted_total: RenNren
    indicators: Indicators


def blend_export_factor(f_a, f_b, k_exp: float):
    """
    Effective export factor, moving linearly from step B (k_exp=0)
    to step A (k_exp=1). Works on scalars and arrays.
    """
    return (1.0 - k_exp) * f_b + k_exp * f_a


def weight_carrier(
    balance: CarrierBalance,
    factors: WeightingFactorTable,
    params: CalculationParameters,
) -> CarrierWeightedEnergy:
    """
    Apply weighting factors to one carrier's balance.

    Raises:
        MissingFactor: if a factor needed for this carrier is not in the table.
    """
    carrier = balance.carrier
    delivered_total = float(np.sum(balance.delivered))
    if delivered_total > 0:
        f_del = factors.factor(carrier, Origin.DELIVERED, Step.A, Direction.INPUT)
        delivered = RenNren(delivered_total * f_del.ren, delivered_total * f_del.nren)
    else:
        delivered = RenNren()

    production = {
        source: values
        for source, values in balance.produced_by_source.items()
        if np.any(values > 0)
    }
    if not production:
        return CarrierWeightedEnergy(carrier, delivered, RenNren(), RenNren())

    weights = source_weights(production, params.averaging)

    def averaged(step: Step, direction: Direction) -> Tuple[np.ndarray, np.ndarray]:
        per_source = {
            source: factors.factor(carrier, Origin.PRODUCED, step, direction, source)
            for source in weights
        }
        return average_factor_series(weights, per_source)

    used_ren, used_nren = averaged(Step.A, Direction.INPUT)
    exp_a_ren, exp_a_nren = averaged(Step.A, Direction.EXPORT)
    exp_b_ren, exp_b_nren = averaged(Step.B, Direction.EXPORT)
    exp_ren = blend_export_factor(exp_a_ren, exp_b_ren, params.k_exp)
    exp_nren = blend_export_factor(exp_a_nren, exp_b_nren, params.k_exp)

    used_epb = balance.used_EPB
    exported_grid = balance.exported_grid
    used_onsite = RenNren(
        float(np.sum(used_epb * used_ren)), float(np.sum(used_epb * used_nren))
    )
    # Energy exported to non-EPB uses is outside the EPB balance
    exported = RenNren(
        float(np.sum(exported_grid * exp_ren)), float(np.sum(exported_grid * exp_nren))
    )
    return CarrierWeightedEnergy(carrier, delivered, used_onsite, exported)


def compute_balance(
    ledger: CarrierLedger,
    factors: WeightingFactorTable,
    params: CalculationParameters,
) -> EnergyBalance:
    """
    Compute the energy balance, its weighting and the final indicators.

    Raises:
        MissingFactor: if the table lacks a factor the ledger needs.
        NegativeBalanceResidual: if a record does not reconcile.
    """
    check_required_factors(factors, ledger)
    balances = compute_balances(ledger)
    weighted = tuple(weight_carrier(b, factors, params) for b in balances)

    # Carriers are already in enumeration order: fixed reduction order
    total = RenNren()
    for w in weighted:
        total = total + w.net
        logger.debug(f"Weighted energy {w.carrier.value}: {w.net}")

    indicators = Indicators.from_weighted_energy(total, params.reference_area)
    logger.info(
        f"C_ep [kWh/m2]: ren={indicators.ren:.1f}, nren={indicators.nren:.1f}, "
        f"tot={indicators.tot:.1f}, RER={indicators.rer:.2f}"
    )
    return EnergyBalance(
        parameters=params,
        balances=balances,
        weighted=weighted,
        weighted_total=total,
        indicators=indicators,
    )


def compute_indicators(
    ledger: CarrierLedger,
    factors: WeightingFactorTable,
    reference_area: float,
    k_exp: float,
    averaging: AveragingPolicy = AveragingPolicy.PRODUCTION_WEIGHTED,
) -> Indicators:
    """Compute Cep_ren, Cep_nren, Cep_tot and RER for a ledger."""
    params = CalculationParameters(
        reference_area=reference_area, k_exp=k_exp, averaging=averaging
    )
    return compute_balance(ledger, factors, params).indicators
