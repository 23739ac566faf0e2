"""Tests for carrier ledger construction and validation."""

import math

import numpy as np
import pytest

from epbd.core.carriers import Carrier, ProductionSource
from epbd.core.ledger import (
    CarrierLedger,
    RawCarrierRecord,
    TimestepRecord,
    balance_environment,
    build_ledger,
)
from epbd.errors import BalanceError, InvalidLedgerData


def test_build_ledger_groups_records_by_carrier():
    # Arrange
    records = [
        RawCarrierRecord(carrier="NATURAL_GAS", timestep=0, delivered=10.0),
        RawCarrierRecord(carrier="ELECTRICITY", timestep=0, delivered=5.0, produced_other=2.0),
        RawCarrierRecord(carrier="NATURAL_GAS", timestep=1, delivered=20.0),
        RawCarrierRecord(carrier="ELECTRICITY", timestep=1, delivered=6.0),
    ]

    # Act
    ledger = build_ledger(records)

    # Assert
    assert len(ledger) == 2
    assert ledger.timesteps == (0, 1)
    assert ledger.records(Carrier.NATURAL_GAS)[1].delivered == 20.0
    assert ledger.records(Carrier.ELECTRICITY)[0].produced_other == 2.0


def test_carriers_follow_enumeration_order():
    # Arrange
    records = [
        RawCarrierRecord(carrier="BIOMASS", timestep=0, delivered=1.0),
        RawCarrierRecord(carrier="NATURAL_GAS", timestep=0, delivered=1.0),
        RawCarrierRecord(carrier="ELECTRICITY", timestep=0, delivered=1.0),
    ]

    # Act
    ledger = build_ledger(records)

    # Assert
    assert ledger.carriers == (Carrier.ELECTRICITY, Carrier.NATURAL_GAS, Carrier.BIOMASS)


def test_records_are_sorted_chronologically():
    # Arrange
    records = [
        RawCarrierRecord(carrier="ELECTRICITY", timestep=t, delivered=float(t))
        for t in (2, 0, 1)
    ]

    # Act
    ledger = build_ledger(records)

    # Assert
    assert [r.timestep for r in ledger.records(Carrier.ELECTRICITY)] == [0, 1, 2]
    np.testing.assert_array_equal(
        ledger.series(Carrier.ELECTRICITY, "delivered"), [0.0, 1.0, 2.0]
    )


def test_cte_carrier_tokens_are_accepted():
    # Arrange & Act
    ledger = build_ledger(
        [
            RawCarrierRecord(carrier="ELECTRICIDAD", timestep=0, delivered=1.0),
            RawCarrierRecord(carrier="gasnatural", timestep=0, delivered=1.0),
            RawCarrierRecord(carrier="RED1", timestep=0, delivered=1.0),
        ]
    )

    # Assert
    assert ledger.carriers == (
        Carrier.ELECTRICITY,
        Carrier.NATURAL_GAS,
        Carrier.DISTRICT_HEATING,
    )


@pytest.mark.parametrize("field", ["delivered", "produced_cogen", "produced_other", "used_nEPB", "used_EPB"])
def test_negative_values_are_rejected(field):
    # Arrange
    values = {"delivered": 1.0, field: -0.5}
    record = RawCarrierRecord(carrier="ELECTRICITY", timestep=3, **values)

    # Act & Assert
    with pytest.raises(InvalidLedgerData, match="non-negative") as excinfo:
        build_ledger([record])
    assert excinfo.value.carrier == Carrier.ELECTRICITY
    assert excinfo.value.timestep == 3
    assert excinfo.value.field == field


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_non_finite_values_are_rejected(value):
    # Act & Assert
    with pytest.raises(InvalidLedgerData, match="finite") as excinfo:
        build_ledger([RawCarrierRecord(carrier="BIOMASS", timestep=0, delivered=value)])
    assert excinfo.value.field == "delivered"
    assert excinfo.value.carrier == Carrier.BIOMASS


def test_non_numeric_values_are_rejected():
    # Act & Assert
    with pytest.raises(InvalidLedgerData, match="must be a number"):
        build_ledger([RawCarrierRecord(carrier="ELECTRICITY", timestep=0, delivered="12")])


def test_unknown_carrier_is_rejected():
    # Act & Assert
    with pytest.raises(InvalidLedgerData, match="Unknown Carrier"):
        build_ledger([RawCarrierRecord(carrier="PLUTONIUM", timestep=0, delivered=1.0)])


def test_duplicate_timestep_is_rejected():
    # Arrange
    records = [
        RawCarrierRecord(carrier="ELECTRICITY", timestep=0, delivered=1.0),
        RawCarrierRecord(carrier="ELECTRICITY", timestep=0, delivered=2.0),
    ]

    # Act & Assert
    with pytest.raises(InvalidLedgerData, match="Duplicate record"):
        build_ledger(records)


@pytest.mark.parametrize("timestep", [-1, 1.5, True])
def test_invalid_timestep_is_rejected(timestep):
    # Act & Assert
    with pytest.raises(InvalidLedgerData, match="Timestep"):
        build_ledger([RawCarrierRecord(carrier="ELECTRICITY", timestep=timestep, delivered=1.0)])


def test_carriers_must_share_the_calculation_window():
    # Arrange
    records = [
        RawCarrierRecord(carrier="ELECTRICITY", timestep=0, delivered=1.0),
        RawCarrierRecord(carrier="ELECTRICITY", timestep=1, delivered=1.0),
        RawCarrierRecord(carrier="NATURAL_GAS", timestep=0, delivered=1.0),
    ]

    # Act & Assert
    with pytest.raises(InvalidLedgerData, match="missing timesteps") as excinfo:
        build_ledger(records)
    assert excinfo.value.carrier == Carrier.NATURAL_GAS
    assert excinfo.value.timestep == 1


def test_invalid_ledger_data_is_a_balance_error():
    assert issubclass(InvalidLedgerData, BalanceError)
    assert issubclass(InvalidLedgerData, ValueError)


def test_has_production_by_source():
    # Arrange
    ledger = build_ledger(
        [
            RawCarrierRecord(carrier="ELECTRICITY", timestep=0, delivered=1.0, produced_cogen=0.0),
            RawCarrierRecord(carrier="ELECTRICITY", timestep=1, delivered=1.0, produced_cogen=3.0),
        ]
    )

    # Assert
    assert ledger.has_production(Carrier.ELECTRICITY, ProductionSource.COGENERATION)
    assert not ledger.has_production(Carrier.ELECTRICITY, ProductionSource.OTHER)


def test_timestep_record_is_frozen():
    # Arrange
    record = TimestepRecord(timestep=0, delivered=1.0, produced_other=2.0, produced_cogen=3.0)

    # Act & Assert
    assert record.produced == 5.0
    with pytest.raises(AttributeError):
        record.delivered = 2.0


def test_ledger_records_are_read_only():
    # Arrange
    ledger = CarrierLedger({Carrier.ELECTRICITY: [TimestepRecord(timestep=0, delivered=1.0)]})

    # Act & Assert
    with pytest.raises(KeyError, match="not found in ledger"):
        ledger.records(Carrier.COAL)
    assert isinstance(ledger.records(Carrier.ELECTRICITY), tuple)


def test_series_rejects_unknown_fields():
    # Arrange
    ledger = CarrierLedger({Carrier.ELECTRICITY: [TimestepRecord(timestep=0, delivered=1.0)]})

    # Act & Assert
    with pytest.raises(KeyError, match="Unknown ledger field"):
        ledger.series(Carrier.ELECTRICITY, "exported")


def test_series_of_metered_epb_use(pv_ledger):
    # Act
    elec = pv_ledger.series(Carrier.ELECTRICITY, "used_EPB")
    gas = pv_ledger.series(Carrier.NATURAL_GAS, "used_EPB")

    # Assert
    np.testing.assert_array_equal(elec, [100.0, 100.0])
    assert np.isnan(gas).all()


def test_has_delivery(make_ledger):
    # Arrange
    ledger = make_ledger(
        {
            "ELECTRICITY": [dict(delivered=0.0), dict(delivered=2.0)],
            "ENVIRONMENT": [dict(delivered=0.0), dict(delivered=0.0)],
        }
    )

    # Assert
    assert ledger.has_delivery(Carrier.ELECTRICITY)
    assert not ledger.has_delivery(Carrier.ENVIRONMENT)


def test_balance_environment_adds_missing_production(make_ledger):
    # Arrange - heat pump: 30 kWh of ambient heat used, 10 declared
    ledger = make_ledger(
        {
            "ELECTRICITY": [dict(delivered=15.0), dict(delivered=5.0)],
            "ENVIRONMENT": [
                dict(delivered=0.0, produced_other=10.0, used_EPB=30.0),
                dict(delivered=0.0, produced_other=8.0, used_EPB=5.0),
            ],
        }
    )

    # Act
    balanced = balance_environment(ledger)

    # Assert
    env = balanced.records(Carrier.ENVIRONMENT)
    assert env[0].produced_other == 20.0 + 10.0
    assert env[1].produced_other == 8.0
    assert balanced.records(Carrier.ELECTRICITY) == ledger.records(Carrier.ELECTRICITY)
    assert ledger.records(Carrier.ENVIRONMENT)[0].produced_other == 10.0


def test_balance_environment_counts_delivered_ambient_heat(make_ledger):
    # Arrange
    ledger = make_ledger({"ENVIRONMENT": [dict(delivered=4.0, used_EPB=10.0)]})

    # Act
    balanced = balance_environment(ledger)

    # Assert
    assert balanced.records(Carrier.ENVIRONMENT)[0].produced_other == 6.0


def test_balance_environment_without_gap_returns_same_ledger(pv_ledger, make_ledger):
    # Arrange
    metered_elsewhere = make_ledger({"ENVIRONMENT": [dict(delivered=3.0)]})

    # Act & Assert
    assert balance_environment(pv_ledger) is pv_ledger
    assert balance_environment(metered_elsewhere) is metered_elsewhere
