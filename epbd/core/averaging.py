"""
Weighting of produced energy when a carrier has several production sources.

No priority is defined among on-site production sources: energy units are
interchangeable, so produced energy used on site or exported carries an
average of the factors of the sources that produced it in that timestep.
"""

from enum import Enum
from typing import Dict, Mapping, TypeVar, Union

import numpy as np

from epbd.core.factors import RenNren

S = TypeVar("S")
ArrayLike = Union[float, np.ndarray]


class AveragingPolicy(Enum):
    PRODUCTION_WEIGHTED = "production_weighted"
    """Each source weighs in proportion to the energy it produced."""
    SIMPLE_MEAN = "simple_mean"
    """Every source with non-zero production weighs the same."""


def source_weights(
    production: Mapping[S, ArrayLike],
    policy: AveragingPolicy = AveragingPolicy.PRODUCTION_WEIGHTED,
) -> Dict[S, np.ndarray]:
    """
    Per-timestep averaging weights of each production source.

    Weights sum to 1 wherever there is production and are all 0 where
    there is none.
    """
    arrays = {s: np.asarray(v, dtype=np.float64) for s, v in production.items()}
    if not arrays:
        return {}
    shape = np.broadcast_shapes(*(a.shape for a in arrays.values()))
    arrays = {s: np.broadcast_to(a, shape) for s, a in arrays.items()}

    if policy is AveragingPolicy.PRODUCTION_WEIGHTED:
        shares = arrays
    elif policy is AveragingPolicy.SIMPLE_MEAN:
        shares = {s: (a > 0).astype(np.float64) for s, a in arrays.items()}
    else:
        raise ValueError(f"Unknown averaging policy: {policy}")

    total = sum(shares.values())
    safe_total = np.where(total > 0, total, 1.0)
    return {s: np.where(total > 0, a / safe_total, 0.0) for s, a in shares.items()}


def average_factor(
    production: Mapping[S, float],
    factors: Mapping[S, RenNren],
    policy: AveragingPolicy = AveragingPolicy.PRODUCTION_WEIGHTED,
) -> RenNren:
    """
    Average factor of a single timestep's production.

    Only sources with non-zero production need a factor. Returns a zero
    pair when nothing was produced.

    >>> average_factor({"pv": 3.0, "chp": 1.0},
    ...                {"pv": RenNren(1.0, 0.0), "chp": RenNren(0.0, 2.0)})
    RenNren(ren=0.75, nren=0.5)
    """
    weights = source_weights(production, policy)
    ren = 0.0
    nren = 0.0
    for source, w in weights.items():
        w = float(w)
        if w == 0.0:
            continue
        if source not in factors:
            raise KeyError(f"No factor given for production source {source!r}")
        ren += w * factors[source].ren
        nren += w * factors[source].nren
    return RenNren(ren, nren)


def average_factor_series(
    weights: Mapping[S, np.ndarray], factors: Mapping[S, RenNren]
) -> tuple[np.ndarray, np.ndarray]:
    """Vectorized counterpart of `average_factor` over precomputed weights."""
    ren = None
    nren = None
    for source, w in weights.items():
        if not np.any(w):
            continue
        f = factors[source]
        ren = w * f.ren if ren is None else ren + w * f.ren
        nren = w * f.nren if nren is None else nren + w * f.nren
    if ren is None:
        shape = next(iter(weights.values())).shape if weights else ()
        return np.zeros(shape), np.zeros(shape)
    return ren, nren
