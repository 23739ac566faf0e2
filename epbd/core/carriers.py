"""Enumerations used as keys throughout the balance engine."""

from enum import Enum
from typing import Dict, Type, TypeVar


class Carrier(Enum):
    """Energy carrier.

    Definition order is the fixed reduction order used when summing
    weighted energy across carriers.
    """

    ELECTRICITY = "ELECTRICITY"
    NATURAL_GAS = "NATURAL_GAS"
    LPG = "LPG"
    DIESEL = "DIESEL"
    FUEL_OIL = "FUEL_OIL"
    COAL = "COAL"
    BIOMASS = "BIOMASS"
    DENSIFIED_BIOMASS = "DENSIFIED_BIOMASS"
    BIOFUEL = "BIOFUEL"
    DISTRICT_HEATING = "DISTRICT_HEATING"
    DISTRICT_COOLING = "DISTRICT_COOLING"
    ENVIRONMENT = "ENVIRONMENT"

    @property
    def order(self) -> int:
        return _CARRIER_ORDER[self]


_CARRIER_ORDER: Dict[Carrier, int] = {c: i for i, c in enumerate(Carrier)}

# Tokens used by CTE carrier and factor files
CARRIER_ALIASES: Dict[str, Carrier] = {
    "ELECTRICIDAD": Carrier.ELECTRICITY,
    "GASNATURAL": Carrier.NATURAL_GAS,
    "GLP": Carrier.LPG,
    "GASOLEO": Carrier.DIESEL,
    "FUELOIL": Carrier.FUEL_OIL,
    "CARBON": Carrier.COAL,
    "BIOMASA": Carrier.BIOMASS,
    "BIOMASADENSIFICADA": Carrier.DENSIFIED_BIOMASS,
    "BIOCARBURANTE": Carrier.BIOFUEL,
    "RED1": Carrier.DISTRICT_HEATING,
    "RED2": Carrier.DISTRICT_COOLING,
    "MEDIOAMBIENTE": Carrier.ENVIRONMENT,
}


class Origin(Enum):
    """Where weighted energy comes from."""

    DELIVERED = "DELIVERED"
    PRODUCED = "PRODUCED"


class Step(Enum):
    """Calculation step of EN ISO 52000-1."""

    A = "A"
    B = "B"


class Direction(Enum):
    """Whether a factor weights energy flowing into the building or out of it."""

    INPUT = "INPUT"
    EXPORT = "EXPORT"


class ProductionSource(Enum):
    """On-site production source."""

    OTHER = "OTHER"
    COGENERATION = "COGENERATION"


ORIGIN_ALIASES: Dict[str, Origin] = {
    "RED": Origin.DELIVERED,
    "GRID": Origin.DELIVERED,
    "INSITU": Origin.PRODUCED,
    "ONSITE": Origin.PRODUCED,
}

DIRECTION_ALIASES: Dict[str, Direction] = {
    "SUMINISTRO": Direction.INPUT,
    "A_RED": Direction.EXPORT,
}

SOURCE_ALIASES: Dict[str, ProductionSource] = {
    "INSITU": ProductionSource.OTHER,
    "COGENERACION": ProductionSource.COGENERATION,
    "COGEN": ProductionSource.COGENERATION,
}

E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: Type[E], token, aliases: Dict[str, E] | None = None) -> E:
    """Parse an enum member from its value, name or a known alias."""
    if isinstance(token, enum_cls):
        return token
    if not isinstance(token, str):
        raise ValueError(f"Invalid {enum_cls.__name__}: {token!r}")
    key = token.strip().upper()
    try:
        return enum_cls(key)
    except ValueError:
        pass
    if key in enum_cls.__members__:
        return enum_cls[key]
    if aliases and key in aliases:
        return aliases[key]
    raise ValueError(f"Unknown {enum_cls.__name__}: {token!r}")


def parse_carrier(token) -> Carrier:
    return parse_enum(Carrier, token, CARRIER_ALIASES)
