"""Typed errors raised by the energy balance engine."""

from typing import Any, Optional


class BalanceError(Exception):
    """Base class for all errors raised while computing an energy balance."""


class InvalidLedgerData(BalanceError, ValueError):
    """Malformed, negative or non-finite raw carrier data."""

    def __init__(
        self,
        message: str,
        carrier: Any = None,
        timestep: Optional[int] = None,
        field: Optional[str] = None,
        value: Any = None,
    ):
        self.carrier = carrier
        self.timestep = timestep
        self.field = field
        self.value = value
        location = []
        if carrier is not None:
            location.append(f"carrier={carrier}")
        if timestep is not None:
            location.append(f"timestep={timestep}")
        if field is not None:
            location.append(f"field={field}")
        if location:
            message = f"{message} ({', '.join(location)})"
        super().__init__(message)


class DuplicateFactorEntry(BalanceError, ValueError):
    """The same weighting factor key was defined more than once."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"Duplicate weighting factor entry: {key}")


class MissingFactor(BalanceError, LookupError):
    """A required weighting factor is not defined in the table."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"Missing weighting factor: {key}")

    def __str__(self) -> str:
        # LookupError would otherwise repr() the message
        return self.args[0]


class NegativeBalanceResidual(BalanceError, ArithmeticError):
    """Energy accounting for a record does not reconcile."""

    def __init__(self, carrier, timestep: int, residual: float, detail: str = ""):
        self.carrier = carrier
        self.timestep = timestep
        self.residual = residual
        message = (
            f"Energy balance does not reconcile for carrier={carrier}, "
            f"timestep={timestep}: residual={residual:.6g}"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
