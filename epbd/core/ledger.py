"""Carrier ledger: validated per-carrier, per-timestep energy series."""

import dataclasses
import logging
import math
import numbers
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from epbd.core.carriers import Carrier, ProductionSource, parse_carrier
from epbd.errors import InvalidLedgerData

logger = logging.getLogger(__name__)

ENERGY_FIELDS: Tuple[str, ...] = (
    "delivered",
    "produced_cogen",
    "produced_other",
    "used_nEPB",
)
OPTIONAL_ENERGY_FIELDS: Tuple[str, ...] = ("used_EPB",)


@dataclass(frozen=True, kw_only=True)
class RawCarrierRecord:
    """Unvalidated record as supplied by a parser."""

    carrier: Union[Carrier, str]
    timestep: int
    delivered: float
    produced_cogen: float = 0.0
    produced_other: float = 0.0
    used_nEPB: float = 0.0
    used_EPB: Optional[float] = None


@dataclass(frozen=True, slots=True, kw_only=True)
class TimestepRecord:
    """Energy flows of one carrier in one time interval (kWh)."""

    timestep: int
    delivered: float
    produced_other: float = 0.0
    produced_cogen: float = 0.0
    used_nEPB: float = 0.0
    used_EPB: Optional[float] = None  # total EPB use; None when not metered

    @property
    def produced(self) -> float:
        return self.produced_cogen + self.produced_other

    def production(self, source: ProductionSource) -> float:
        if source is ProductionSource.COGENERATION:
            return self.produced_cogen
        return self.produced_other


def _check_energy(carrier, timestep, field: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidLedgerData(
            f"Energy value must be a number, got {value!r}",
            carrier=carrier,
            timestep=timestep,
            field=field,
            value=value,
        )
    value = float(value)
    if not math.isfinite(value):
        raise InvalidLedgerData(
            f"Energy value must be finite, got {value!r}",
            carrier=carrier,
            timestep=timestep,
            field=field,
            value=value,
        )
    if value < 0:
        raise InvalidLedgerData(
            f"Energy value must be non-negative, got {value!r}",
            carrier=carrier,
            timestep=timestep,
            field=field,
            value=value,
        )
    return value


def _check_timestep(carrier, timestep) -> int:
    if isinstance(timestep, bool) or not isinstance(timestep, numbers.Integral):
        raise InvalidLedgerData(
            f"Timestep must be an integer index, got {timestep!r}",
            carrier=carrier,
            field="timestep",
            value=timestep,
        )
    if timestep < 0:
        raise InvalidLedgerData(
            f"Timestep must be non-negative, got {timestep!r}",
            carrier=carrier,
            field="timestep",
            value=timestep,
        )
    return int(timestep)


class CarrierLedger:
    """
    Immutable, validated container of timestep records per carrier.

    Carriers are iterated in enumeration order and records in chronological
    order, so any reduction over the ledger is reproducible.
    """

    def __init__(self, records: Mapping[Carrier, Sequence[TimestepRecord]]):
        ordered = sorted(records.items(), key=lambda item: item[0].order)
        self._records: Mapping[Carrier, Tuple[TimestepRecord, ...]] = MappingProxyType(
            {
                carrier: tuple(sorted(recs, key=lambda r: r.timestep))
                for carrier, recs in ordered
            }
        )
        timestep_sets = {
            carrier: tuple(r.timestep for r in recs)
            for carrier, recs in self._records.items()
        }
        self._timesteps: Tuple[int, ...] = tuple(
            sorted({t for ts in timestep_sets.values() for t in ts})
        )
        for carrier, ts in timestep_sets.items():
            if ts != self._timesteps:
                missing = sorted(set(self._timesteps) - set(ts))
                raise InvalidLedgerData(
                    "Carrier does not cover the whole calculation window, "
                    f"missing timesteps {missing}",
                    carrier=carrier,
                    timestep=missing[0] if missing else None,
                )

    @property
    def carriers(self) -> Tuple[Carrier, ...]:
        return tuple(self._records.keys())

    @property
    def timesteps(self) -> Tuple[int, ...]:
        return self._timesteps

    @property
    def num_timesteps(self) -> int:
        return len(self._timesteps)

    def records(self, carrier: Carrier) -> Tuple[TimestepRecord, ...]:
        try:
            return self._records[carrier]
        except KeyError:
            raise KeyError(f"Carrier '{carrier}' not found in ledger") from None

    def series(self, carrier: Carrier, field: str) -> np.ndarray:
        """
        Return one field of a carrier as a float array in timestep order.

        Timesteps without a metered `used_EPB` are NaN.
        """
        if field not in ENERGY_FIELDS + OPTIONAL_ENERGY_FIELDS:
            raise KeyError(f"Unknown ledger field '{field}'")
        values = [getattr(r, field) for r in self.records(carrier)]
        return np.array(
            [np.nan if v is None else v for v in values], dtype=np.float64
        )

    def has_delivery(self, carrier: Carrier) -> bool:
        return any(r.delivered > 0 for r in self.records(carrier))

    def has_production(self, carrier: Carrier, source: ProductionSource) -> bool:
        return any(r.production(source) > 0 for r in self.records(carrier))

    def __contains__(self, carrier) -> bool:
        return carrier in self._records

    def __iter__(self) -> Iterator[Tuple[Carrier, Tuple[TimestepRecord, ...]]]:
        return iter(self._records.items())

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        carriers = ", ".join(c.value for c in self.carriers)
        return f"CarrierLedger(carriers=[{carriers}], timesteps={self.num_timesteps})"


def build_ledger(raw_records: Sequence[RawCarrierRecord]) -> CarrierLedger:
    """
    Validate raw records and group them per carrier.

    Raises:
        InvalidLedgerData: on unknown carriers, bad timesteps, duplicate
            (carrier, timestep) pairs or non-finite/negative energy values.
    """
    grouped: Dict[Carrier, List[TimestepRecord]] = {}
    seen = set()
    for raw in raw_records:
        try:
            carrier = parse_carrier(raw.carrier)
        except ValueError as e:
            raise InvalidLedgerData(
                str(e), carrier=raw.carrier, timestep=raw.timestep, field="carrier"
            ) from e
        timestep = _check_timestep(carrier, raw.timestep)
        if (carrier, timestep) in seen:
            raise InvalidLedgerData(
                "Duplicate record", carrier=carrier, timestep=timestep
            )
        seen.add((carrier, timestep))

        values = {
            field: _check_energy(carrier, timestep, field, getattr(raw, field))
            for field in ENERGY_FIELDS
        }
        used_epb = raw.used_EPB
        if used_epb is not None:
            used_epb = _check_energy(carrier, timestep, "used_EPB", used_epb)

        grouped.setdefault(carrier, []).append(
            TimestepRecord(timestep=timestep, used_EPB=used_epb, **values)
        )

    ledger = CarrierLedger(grouped)
    logger.info(
        f"Built ledger with {len(ledger)} carriers and {ledger.num_timesteps} timesteps"
    )
    return ledger


def balance_environment(ledger: CarrierLedger) -> CarrierLedger:
    """
    Declare the ambient energy production that metered ENVIRONMENT use implies.

    Ambient heat (heat pumps, solar thermal) is usually given only as a use.
    For every ENVIRONMENT record with a metered `used_EPB` not covered by
    production and delivery, the gap is added to `produced_other`. Records
    of other carriers are returned unchanged.
    """
    if Carrier.ENVIRONMENT not in ledger:
        return ledger

    records = []
    added = 0.0
    for record in ledger.records(Carrier.ENVIRONMENT):
        if record.used_EPB is not None:
            missing = record.used_EPB - record.produced - record.delivered
            if missing > 0:
                record = dataclasses.replace(
                    record, produced_other=record.produced_other + missing
                )
                added += missing
        records.append(record)

    if added == 0.0:
        return ledger
    logger.warning(
        f"Added {added:.2f} kWh of on-site ENVIRONMENT production to balance its use"
    )
    balanced = dict(ledger)
    balanced[Carrier.ENVIRONMENT] = records
    return CarrierLedger(balanced)
