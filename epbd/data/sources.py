"""CSV readers for carrier ledgers and weighting factor tables."""

import logging
import math
from pathlib import Path
from typing import List, Tuple, Union

import pandas as pd

from epbd.core.factors import RawFactorEntry, WeightingFactorTable, build_factor_table
from epbd.core.ledger import (
    ENERGY_FIELDS,
    CarrierLedger,
    RawCarrierRecord,
    build_ledger,
)
from epbd.errors import InvalidLedgerData

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

LEDGER_COLUMNS: Tuple[str, ...] = ("carrier", "timestep") + ENERGY_FIELDS
FACTOR_COLUMNS: Tuple[str, ...] = ("carrier", "origin", "step", "direction", "ren", "nren")


def _read_csv(path: PathLike) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    df = pd.read_csv(path, comment="#", skipinitialspace=True)
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def read_ledger_csv(path: PathLike) -> List[RawCarrierRecord]:
    """
    Read raw carrier records from a long-format CSV file.

    Expected columns: carrier, timestep, delivered, produced_cogen,
    produced_other, used_nEPB and, optionally, used_EPB. Values are passed
    through unvalidated; `build_ledger` does the validation.
    """
    df = _read_csv(path)
    for col in LEDGER_COLUMNS:
        if col not in df.columns:
            raise InvalidLedgerData(f"Column '{col}' not found in {path}", field=col)
    has_used_epb = "used_EPB" in df.columns

    records = []
    for row in df.to_dict("records"):
        carrier = row["carrier"]
        if isinstance(carrier, str):
            carrier = carrier.strip()
        used_epb = row["used_EPB"] if has_used_epb else None
        records.append(
            RawCarrierRecord(
                carrier=carrier,
                timestep=row["timestep"],
                delivered=row["delivered"],
                produced_cogen=row["produced_cogen"],
                produced_other=row["produced_other"],
                used_nEPB=row["used_nEPB"],
                used_EPB=None if _is_blank(used_epb) else used_epb,
            )
        )
    logger.debug(f"Read {len(records)} carrier records from {path}")
    return records


def read_factors_csv(path: PathLike) -> List[RawFactorEntry]:
    """
    Read raw weighting factors from a CSV file.

    Expected columns: carrier, origin, step, direction, ren, nren and,
    optionally, source and comment.
    """
    df = _read_csv(path)
    for col in FACTOR_COLUMNS:
        if col not in df.columns:
            raise ValueError(f"Column '{col}' not found in {path}")

    entries = []
    for row in df.to_dict("records"):
        source = row.get("source")
        comment = row.get("comment")
        entries.append(
            RawFactorEntry(
                carrier=row["carrier"],
                origin=row["origin"],
                step=row["step"],
                direction=row["direction"],
                ren=row["ren"],
                nren=row["nren"],
                source=None if _is_blank(source) else source,
                comment="" if _is_blank(comment) else str(comment).strip(),
            )
        )
    logger.debug(f"Read {len(entries)} weighting factors from {path}")
    return entries


def load_ledger(path: PathLike) -> CarrierLedger:
    return build_ledger(read_ledger_csv(path))


def load_factor_table(path: PathLike) -> WeightingFactorTable:
    return build_factor_table(read_factors_csv(path))
