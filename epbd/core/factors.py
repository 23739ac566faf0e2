"""Weighting (primary energy) factor table."""

import logging
import math
import numbers
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from epbd.core.carriers import (
    DIRECTION_ALIASES,
    ORIGIN_ALIASES,
    SOURCE_ALIASES,
    Carrier,
    Direction,
    Origin,
    ProductionSource,
    Step,
    parse_carrier,
    parse_enum,
)
from epbd.core.ledger import CarrierLedger
from epbd.errors import DuplicateFactorEntry, MissingFactor

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RenNren:
    """Pair of renewable and non-renewable components."""

    ren: float = 0.0
    nren: float = 0.0

    @property
    def tot(self) -> float:
        return self.ren + self.nren

    @property
    def rer(self) -> float:
        """Renewable energy ratio, 0 when the total is 0."""
        tot = self.tot
        if tot == 0:
            return 0.0
        return self.ren / tot

    def __add__(self, other: "RenNren") -> "RenNren":
        return RenNren(self.ren + other.ren, self.nren + other.nren)

    def __sub__(self, other: "RenNren") -> "RenNren":
        return RenNren(self.ren - other.ren, self.nren - other.nren)

    def __mul__(self, k: float) -> "RenNren":
        return RenNren(self.ren * k, self.nren * k)

    __rmul__ = __mul__

    def __str__(self) -> str:
        return f"{{ ren: {self.ren:.3f}, nren: {self.nren:.3f} }}"


@dataclass(frozen=True, slots=True, kw_only=True)
class FactorDefaults:
    """User-definable factors used when completing a factor table."""

    # EN ISO 52000-1 9.6.6.2.3
    cogen_to_grid: RenNren = RenNren(0.0, 2.5)
    district_heating: RenNren = RenNren(0.0, 1.3)
    district_cooling: RenNren = RenNren(0.0, 1.3)

    def __post_init__(self):
        for name in ("cogen_to_grid", "district_heating", "district_cooling"):
            value = getattr(self, name)
            if not (math.isfinite(value.ren) and math.isfinite(value.nren)):
                raise ValueError(f"Default factor {name} must be finite, got {value}")


# Carriers whose delivered factors already count as nearby resources
NEARBY_CARRIERS: Tuple[Carrier, ...] = (
    Carrier.BIOMASS,
    Carrier.DENSIFIED_BIOMASS,
    Carrier.DISTRICT_HEATING,
    Carrier.DISTRICT_COOLING,
    Carrier.ENVIRONMENT,
)


@dataclass(frozen=True, slots=True)
class FactorKey:
    carrier: Carrier
    origin: Origin
    step: Step
    direction: Direction
    source: Optional[ProductionSource] = None

    def __str__(self) -> str:
        parts = [self.carrier.value, self.origin.value]
        if self.source is not None:
            parts.append(self.source.value)
        parts.extend([self.step.value, self.direction.value])
        return "(" + ", ".join(parts) + ")"


@dataclass(frozen=True, kw_only=True)
class RawFactorEntry:
    """Unvalidated weighting factor as supplied by a parser."""

    carrier: Union[Carrier, str]
    origin: Union[Origin, str]
    step: Union[Step, str]
    direction: Union[Direction, str]
    ren: float
    nren: float
    source: Union[ProductionSource, str, None] = None
    comment: str = ""


@dataclass(frozen=True, slots=True)
class FactorEntry:
    key: FactorKey
    factors: RenNren
    comment: str = ""


def _parse_source(token) -> Optional[ProductionSource]:
    if token is None:
        return None
    if isinstance(token, float) and math.isnan(token):
        return None
    if isinstance(token, str) and not token.strip():
        return None
    return parse_enum(ProductionSource, token, SOURCE_ALIASES)


def _check_coefficient(key: FactorKey, name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValueError(f"Factor {key} has non-numeric {name} coefficient: {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Factor {key} has non-finite {name} coefficient: {value!r}")
    return value


class WeightingFactorTable:
    """Read-only lookup of weighting factors, constant for the whole calculation window."""

    def __init__(self, entries: Mapping[FactorKey, FactorEntry]):
        self._entries: Mapping[FactorKey, FactorEntry] = MappingProxyType(dict(entries))

    def factor(
        self,
        carrier: Carrier,
        origin: Origin,
        step: Step,
        direction: Direction,
        source: Optional[ProductionSource] = None,
    ) -> RenNren:
        """
        Look up a factor pair.

        A produced-energy lookup for a specific source falls back to the
        source-less entry of the same carrier, step and direction.

        Raises:
            MissingFactor: if neither key is defined.
        """
        if origin is Origin.DELIVERED:
            source = None
        key = FactorKey(carrier, origin, step, direction, source)
        entry = self._entries.get(key)
        if entry is None and source is not None:
            entry = self._entries.get(FactorKey(carrier, origin, step, direction))
        if entry is None:
            raise MissingFactor(key)
        return entry.factors

    def has_factor(
        self,
        carrier: Carrier,
        origin: Origin,
        step: Step,
        direction: Direction,
        source: Optional[ProductionSource] = None,
    ) -> bool:
        try:
            self.factor(carrier, origin, step, direction, source)
        except MissingFactor:
            return False
        return True

    def entry(self, key: FactorKey) -> FactorEntry:
        try:
            return self._entries[key]
        except KeyError:
            raise MissingFactor(key) from None

    @property
    def carriers(self) -> Tuple[Carrier, ...]:
        return tuple(sorted({k.carrier for k in self._entries}, key=lambda c: c.order))

    def __contains__(self, key) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[FactorEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


def build_factor_table(raw_entries: Sequence[RawFactorEntry]) -> WeightingFactorTable:
    """
    Build a factor table from flat entries.

    Raises:
        DuplicateFactorEntry: if a key is defined twice.
        ValueError: on unknown enumeration tokens or non-finite coefficients.
    """
    entries: Dict[FactorKey, FactorEntry] = {}
    for raw in raw_entries:
        key = FactorKey(
            carrier=parse_carrier(raw.carrier),
            origin=parse_enum(Origin, raw.origin, ORIGIN_ALIASES),
            step=parse_enum(Step, raw.step),
            direction=parse_enum(Direction, raw.direction, DIRECTION_ALIASES),
            source=_parse_source(raw.source),
        )
        if key.origin is Origin.DELIVERED and key.source is not None:
            raise ValueError(f"Delivered energy factor {key} cannot name a production source")
        if key in entries:
            raise DuplicateFactorEntry(key)
        factors = RenNren(
            _check_coefficient(key, "ren", raw.ren),
            _check_coefficient(key, "nren", raw.nren),
        )
        entries[key] = FactorEntry(key=key, factors=factors, comment=raw.comment or "")

    logger.info(f"Built weighting factor table with {len(entries)} entries")
    return WeightingFactorTable(entries)


def required_keys(ledger: CarrierLedger) -> List[FactorKey]:
    """List every factor lookup that weighting the given ledger will perform."""
    keys: List[FactorKey] = []
    for carrier in ledger.carriers:
        if ledger.has_delivery(carrier):
            keys.append(FactorKey(carrier, Origin.DELIVERED, Step.A, Direction.INPUT))
        for source in ProductionSource:
            if not ledger.has_production(carrier, source):
                continue
            keys.append(FactorKey(carrier, Origin.PRODUCED, Step.A, Direction.INPUT, source))
            keys.append(FactorKey(carrier, Origin.PRODUCED, Step.A, Direction.EXPORT, source))
            keys.append(FactorKey(carrier, Origin.PRODUCED, Step.B, Direction.EXPORT, source))
    return keys


def check_required_factors(table: WeightingFactorTable, ledger: CarrierLedger) -> None:
    """
    Raises:
        MissingFactor: for the first required key that the table cannot resolve.
    """
    for key in required_keys(ledger):
        table.factor(key.carrier, key.origin, key.step, key.direction, key.source)


def derive_missing_factors(
    table: WeightingFactorTable, defaults: FactorDefaults = FactorDefaults()
) -> WeightingFactorTable:
    """
    Complete a factor table with the conventional defaults.

    - ENVIRONMENT delivered and produced step A input factors are 1.0/0.0.
    - When the table has ELECTRICITY: on-site production (other sources)
      input is 1.0/0.0, cogeneration input is 0.0/0.0 (its impact is in the
      fuel it burns) and cogeneration exported in step A is
      `defaults.cogen_to_grid`.
    - District heating and cooling delivered factors come from `defaults`.
    - For every produced step A input factor, the step A export factor
      defaults to that input factor and the step B export factor to the
      carrier's delivered step A factor, i.e. the resources saved to the
      grid by the exported energy.

    Existing entries are never replaced, and every derived one is logged.
    """
    entries: Dict[FactorKey, FactorEntry] = {e.key: e for e in table}
    carriers = set(table.carriers)

    def add(key: FactorKey, factors: RenNren, comment: str) -> None:
        if key in entries:
            return
        entries[key] = FactorEntry(key=key, factors=factors, comment=comment)
        logger.warning(f"Derived factor {key} = {factors}")

    def produced_input_defined(carrier: Carrier, source: ProductionSource) -> bool:
        return any(
            FactorKey(carrier, Origin.PRODUCED, Step.A, Direction.INPUT, s) in entries
            for s in (source, None)
        )

    env = Carrier.ENVIRONMENT
    add(
        FactorKey(env, Origin.PRODUCED, Step.A, Direction.INPUT),
        RenNren(1.0, 0.0),
        "Resources used to obtain ambient heat",
    )
    add(
        FactorKey(env, Origin.DELIVERED, Step.A, Direction.INPUT),
        RenNren(1.0, 0.0),
        "Resources used to obtain ambient heat (notional grid)",
    )

    elec = Carrier.ELECTRICITY
    if elec in carriers:
        if not produced_input_defined(elec, ProductionSource.OTHER):
            add(
                FactorKey(elec, Origin.PRODUCED, Step.A, Direction.INPUT, ProductionSource.OTHER),
                RenNren(1.0, 0.0),
                "Resources used to produce electricity on site",
            )
        add(
            FactorKey(elec, Origin.PRODUCED, Step.A, Direction.INPUT, ProductionSource.COGENERATION),
            RenNren(0.0, 0.0),
            "Cogeneration impact is counted in the fuel it uses",
        )
        add(
            FactorKey(elec, Origin.PRODUCED, Step.A, Direction.EXPORT, ProductionSource.COGENERATION),
            defaults.cogen_to_grid,
            "Resources used to produce cogenerated electricity exported to the grid",
        )

    add(
        FactorKey(Carrier.DISTRICT_HEATING, Origin.DELIVERED, Step.A, Direction.INPUT),
        defaults.district_heating,
        "Resources used to supply district heating",
    )
    add(
        FactorKey(Carrier.DISTRICT_COOLING, Origin.DELIVERED, Step.A, Direction.INPUT),
        defaults.district_cooling,
        "Resources used to supply district cooling",
    )

    for entry in list(entries.values()):
        key = entry.key
        if not (
            key.origin is Origin.PRODUCED
            and key.step is Step.A
            and key.direction is Direction.INPUT
        ):
            continue
        add(
            FactorKey(key.carrier, Origin.PRODUCED, Step.A, Direction.EXPORT, key.source),
            entry.factors,
            "Resources used to produce the energy exported to the grid",
        )
        delivered = entries.get(FactorKey(key.carrier, Origin.DELIVERED, Step.A, Direction.INPUT))
        if delivered is not None:
            add(
                FactorKey(key.carrier, Origin.PRODUCED, Step.B, Direction.EXPORT, key.source),
                delivered.factors,
                "Resources saved to the grid by the energy exported to the grid",
            )

    return WeightingFactorTable(entries)


def to_nearby(table: WeightingFactorTable) -> WeightingFactorTable:
    """
    Convert a distant-perimeter table to the nearby perimeter.

    Delivered factors of carriers outside `NEARBY_CARRIERS` count all their
    resources as non-renewable (ren' = 0, nren' = ren + nren). Produced
    energy factors are kept.
    """
    entries: Dict[FactorKey, FactorEntry] = {}
    for entry in table:
        key = entry.key
        if key.origin is Origin.PRODUCED or key.carrier in NEARBY_CARRIERS:
            entries[key] = entry
            continue
        comment = "Nearby perimeter"
        if entry.comment:
            comment = f"{comment}: {entry.comment}"
        entries[key] = FactorEntry(
            key=key, factors=RenNren(0.0, entry.factors.tot), comment=comment
        )
    return WeightingFactorTable(entries)
