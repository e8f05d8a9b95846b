"""
Estimator - Turn a register array into a cardinality estimate.

Raw HyperLogLog has a large relative error when many registers are still
empty, so below 3m the estimate switches to linear counting over the
fraction of empty registers.

Error: ~1.04 / sqrt(m) = ~0.81% standard error for m = 16384
"""

from __future__ import annotations

import math

import numpy as np

from hllstore.sketches.registers import NUM_REGISTERS, RegisterArray

LINEAR_COUNTING_THRESHOLD = 3 * NUM_REGISTERS


def alpha(m: int) -> float:
    """Bias correction constant for m registers."""
    if m <= 16:
        return 0.673
    elif m <= 32:
        return 0.697
    elif m <= 64:
        return 0.709
    else:
        return 0.7213 / (1 + 1.079 / m)


def _round(x: float) -> int:
    # Half-up, not banker's rounding
    return int(math.floor(x + 0.5))


def hyperloglog_estimate(registers: RegisterArray) -> int:
    """Raw HyperLogLog estimate: alpha * m^2 / sum(2^-rank)."""
    m = len(registers)
    z = float(np.sum(np.exp2(-registers.values.astype(np.float64))))
    return _round(alpha(m) * m * m / z)


def linear_count_estimate(registers: RegisterArray) -> int:
    """
    Linear counting estimate: -m * ln(V / m).

    Only defined while at least one register is still empty.
    """
    m = len(registers)
    zeros = registers.zero_count()
    if zeros == 0:
        raise ValueError("Linear counting needs at least one empty register")
    return _round(-m * math.log(zeros / m))


def estimate(registers: RegisterArray) -> int:
    """
    Estimate the number of distinct values recorded in a register array.

    Args:
        registers: Register array of an existing key

    Returns:
        Estimated cardinality
    """
    raw = hyperloglog_estimate(registers)
    if registers.zero_count() > 0 and raw <= LINEAR_COUNTING_THRESHOLD:
        return linear_count_estimate(registers)
    return raw
