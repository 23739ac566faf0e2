"""Shared fixtures for the balance engine tests."""

from pathlib import Path

import pytest

from epbd.core.factors import RawFactorEntry, build_factor_table
from epbd.core.ledger import RawCarrierRecord, build_ledger

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def factor_entries():
    """Factors for grid and on-site electricity (PV and cogeneration) and natural gas."""
    return [
        RawFactorEntry(carrier="ELECTRICITY", origin="DELIVERED", step="A", direction="INPUT", ren=0.5, nren=2.0),
        RawFactorEntry(carrier="ELECTRICITY", origin="PRODUCED", step="A", direction="INPUT", source="OTHER", ren=1.0, nren=0.0),
        RawFactorEntry(carrier="ELECTRICITY", origin="PRODUCED", step="A", direction="EXPORT", source="OTHER", ren=1.0, nren=0.0),
        RawFactorEntry(carrier="ELECTRICITY", origin="PRODUCED", step="B", direction="EXPORT", source="OTHER", ren=0.5, nren=2.0),
        RawFactorEntry(carrier="ELECTRICITY", origin="PRODUCED", step="A", direction="INPUT", source="COGENERATION", ren=0.0, nren=0.0),
        RawFactorEntry(carrier="ELECTRICITY", origin="PRODUCED", step="A", direction="EXPORT", source="COGENERATION", ren=0.0, nren=2.5),
        RawFactorEntry(carrier="ELECTRICITY", origin="PRODUCED", step="B", direction="EXPORT", source="COGENERATION", ren=0.5, nren=2.0),
        RawFactorEntry(carrier="NATURAL_GAS", origin="DELIVERED", step="A", direction="INPUT", ren=0.0, nren=1.1),
    ]


@pytest.fixture
def factor_table(factor_entries):
    return build_factor_table(factor_entries)


@pytest.fixture
def make_ledger():
    """Build a ledger from {carrier: [dict(field=value, ...), ...]} in timestep order."""

    def _make(series):
        records = []
        for carrier, rows in series.items():
            for t, row in enumerate(rows):
                records.append(RawCarrierRecord(carrier=carrier, timestep=t, **row))
        return build_ledger(records)

    return _make


@pytest.fixture
def pv_ledger(make_ledger):
    """Two timesteps of PV electricity: one with a deficit, one with a surplus."""
    return make_ledger(
        {
            "ELECTRICITY": [
                dict(delivered=60.0, produced_other=40.0, used_EPB=100.0),
                dict(delivered=0.0, produced_other=150.0, used_EPB=100.0),
            ],
            "NATURAL_GAS": [
                dict(delivered=200.0),
                dict(delivered=50.0),
            ],
        }
    )
