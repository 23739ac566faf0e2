"""
Per-carrier, per-timestep energy balance.

Follows the assumptions of the EN ISO 52000-1 implementation:
- produced energy is compensated per carrier, not per service;
- cogeneration covers EPB uses first, then other on-site production, but the
  weighting of produced energy does not depend on that order (see
  `epbd.core.averaging`);
- non-EPB uses are served from the production left after EPB uses, and any
  remaining production is exported to the grid;
- the load matching factor is 1.0.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from epbd.core.carriers import Carrier, ProductionSource
from epbd.core.ledger import CarrierLedger, TimestepRecord
from epbd.errors import NegativeBalanceResidual

logger = logging.getLogger(__name__)

BALANCE_RTOL = 1e-9
LOAD_MATCH_FACTOR = 1.0


@dataclass(frozen=True, slots=True, kw_only=True)
class BalanceEntry:
    """Balance of one carrier in one timestep (kWh)."""

    timestep: int
    delivered_EPB: float
    used_EPB: float  # production used on site for EPB uses
    exported_grid: float
    exported_nEPB: float
    produced_cogen: float
    produced_other: float
    used_nEPB: float

    @property
    def produced(self) -> float:
        return self.produced_cogen + self.produced_other

    @property
    def exported(self) -> float:
        return self.exported_grid + self.exported_nEPB

    @property
    def delivered_nEPB(self) -> float:
        """Non-EPB demand not covered by production, outside the EPB balance."""
        return self.used_nEPB - self.exported_nEPB


@dataclass(frozen=True, slots=True)
class CarrierBalance:
    """Chronological balance entries of a carrier."""

    carrier: Carrier
    entries: Tuple[BalanceEntry, ...]

    def _array(self, name: str) -> np.ndarray:
        return np.array([getattr(e, name) for e in self.entries], dtype=np.float64)

    @property
    def timesteps(self) -> Tuple[int, ...]:
        return tuple(e.timestep for e in self.entries)

    @property
    def delivered(self) -> np.ndarray:
        return self._array("delivered_EPB")

    @property
    def used_EPB(self) -> np.ndarray:
        return self._array("used_EPB")

    @property
    def exported_grid(self) -> np.ndarray:
        return self._array("exported_grid")

    @property
    def exported_nEPB(self) -> np.ndarray:
        return self._array("exported_nEPB")

    @property
    def produced(self) -> np.ndarray:
        return self._array("produced_cogen") + self._array("produced_other")

    @property
    def produced_by_source(self) -> Dict[ProductionSource, np.ndarray]:
        return {
            ProductionSource.OTHER: self._array("produced_other"),
            ProductionSource.COGENERATION: self._array("produced_cogen"),
        }

    def totals(self) -> Dict[str, float]:
        """Energy totals over the calculation window."""
        return {
            "delivered": float(np.sum(self.delivered)),
            "produced": float(np.sum(self.produced)),
            "used_EPB": float(np.sum(self.used_EPB)),
            "exported_grid": float(np.sum(self.exported_grid)),
            "exported_nEPB": float(np.sum(self.exported_nEPB)),
        }


def _tolerance(*values: float) -> float:
    return BALANCE_RTOL * max(1.0, *values)


def compute_entry(carrier: Carrier, record: TimestepRecord) -> BalanceEntry:
    """
    Balance a single timestep record.

    Raises:
        NegativeBalanceResidual: if delivered energy does not match the EPB
            demand left uncovered by production, or the production does not
            reconcile with its uses and exports.
    """
    t = record.timestep
    cogen = record.produced_cogen
    other = record.produced_other
    produced = record.produced

    if record.used_EPB is None:
        # Without a metered EPB use, delivered energy is the whole EPB demand
        demand = record.delivered
        used_epb = 0.0
    else:
        demand = record.used_EPB
        used_cogen = min(demand, cogen)
        used_other = min(demand - used_cogen, other)
        used_epb = (used_cogen + used_other) * LOAD_MATCH_FACTOR
        residual = demand - used_epb - record.delivered
        if abs(residual) > _tolerance(demand, produced, record.delivered):
            raise NegativeBalanceResidual(
                carrier,
                t,
                residual,
                "delivered energy differs from EPB use not covered by production",
            )

    remaining = produced - used_epb
    exported_nepb = min(remaining, record.used_nEPB)
    exported_grid = remaining - exported_nepb
    if record.used_nEPB > remaining:
        logger.debug(
            f"{carrier.value} t={t}: non-EPB use {record.used_nEPB} exceeds "
            f"available production {remaining}, remainder supplied by the grid"
        )

    tol = _tolerance(produced, demand, record.used_nEPB)
    for name, value in (
        ("used_EPB", used_epb),
        ("exported_grid", exported_grid),
        ("exported_nEPB", exported_nepb),
    ):
        if value < -tol:
            raise NegativeBalanceResidual(carrier, t, value, f"negative {name}")
    residual = used_epb + exported_grid + exported_nepb - produced
    if abs(residual) > tol:
        raise NegativeBalanceResidual(
            carrier, t, residual, "production not fully accounted for"
        )

    return BalanceEntry(
        timestep=t,
        delivered_EPB=record.delivered,
        used_EPB=used_epb,
        exported_grid=exported_grid,
        exported_nEPB=exported_nepb,
        produced_cogen=cogen,
        produced_other=other,
        used_nEPB=record.used_nEPB,
    )


def compute_carrier_balance(
    carrier: Carrier, records: Tuple[TimestepRecord, ...]
) -> CarrierBalance:
    entries = tuple(compute_entry(carrier, r) for r in records)
    balance = CarrierBalance(carrier, entries)
    logger.debug(f"Balance for {carrier.value}: {balance.totals()}")
    return balance


def compute_balances(ledger: CarrierLedger) -> Tuple[CarrierBalance, ...]:
    """Balance every carrier of the ledger, in carrier enumeration order."""
    return tuple(
        compute_carrier_balance(carrier, records) for carrier, records in ledger
    )
