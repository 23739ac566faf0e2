from epbd.core.averaging import AveragingPolicy, average_factor
from epbd.core.balance import BalanceEntry, CarrierBalance, compute_balances
from epbd.core.carriers import Carrier, Direction, Origin, ProductionSource, Step
from epbd.core.factors import (
    FactorDefaults,
    RawFactorEntry,
    RenNren,
    WeightingFactorTable,
    build_factor_table,
    derive_missing_factors,
    to_nearby,
)
from epbd.core.indicators import (
    CalculationParameters,
    EnergyBalance,
    Indicators,
    compute_balance,
    compute_indicators,
)
from epbd.core.ledger import (
    CarrierLedger,
    RawCarrierRecord,
    balance_environment,
    build_ledger,
)

__all__ = [
    "AveragingPolicy",
    "average_factor",
    "BalanceEntry",
    "CarrierBalance",
    "compute_balances",
    "Carrier",
    "Direction",
    "Origin",
    "ProductionSource",
    "Step",
    "FactorDefaults",
    "RawFactorEntry",
    "RenNren",
    "WeightingFactorTable",
    "build_factor_table",
    "derive_missing_factors",
    "to_nearby",
    "CalculationParameters",
    "EnergyBalance",
    "Indicators",
    "compute_balance",
    "compute_indicators",
    "CarrierLedger",
    "RawCarrierRecord",
    "balance_environment",
    "build_ledger",
]
