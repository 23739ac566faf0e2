from epbd.core import (
    AveragingPolicy,
    CalculationParameters,
    Carrier,
    CarrierLedger,
    EnergyBalance,
    Indicators,
    RawCarrierRecord,
    RawFactorEntry,
    WeightingFactorTable,
    build_factor_table,
    build_ledger,
    compute_balance,
    compute_indicators,
    derive_missing_factors,
)
from epbd.errors import (
    BalanceError,
    DuplicateFactorEntry,
    InvalidLedgerData,
    MissingFactor,
    NegativeBalanceResidual,
)

__version__ = "0.1.0"

__all__ = [
    "AveragingPolicy",
    "CalculationParameters",
    "Carrier",
    "CarrierLedger",
    "EnergyBalance",
    "Indicators",
    "RawCarrierRecord",
    "RawFactorEntry",
    "WeightingFactorTable",
    "build_factor_table",
    "build_ledger",
    "compute_balance",
    "compute_indicators",
    "derive_missing_factors",
    "BalanceError",
    "DuplicateFactorEntry",
    "InvalidLedgerData",
    "MissingFactor",
    "NegativeBalanceResidual",
]
