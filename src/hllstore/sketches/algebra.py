"""
Set algebra over register arrays.

Union merges the arrays and estimates once. Intersection combines the
union estimate with the individual estimates:

    |A ∩ B| = |A| + |B| - |A ∪ B|

which is exact inclusion-exclusion for two sets only. With three or more
arrays the same formula, abs(union - sum), is applied as-is; it is a
biased approximation, not inclusion-exclusion over all subsets.
"""

from __future__ import annotations

from typing import Sequence

from hllstore.sketches.estimator import estimate
from hllstore.sketches.registers import RegisterArray, merge_all


def union_estimate(arrays: Sequence[RegisterArray]) -> int:
    """Estimated cardinality of the union. 0 when no arrays are given."""
    if not arrays:
        return 0
    return estimate(merge_all(arrays))


def intersection_estimate(arrays: Sequence[RegisterArray], requested: int) -> int:
    """
    Estimated cardinality of the intersection.

    Args:
        arrays: Register arrays that were found
        requested: Number of distinct keys asked for

    Returns:
        0 when nothing was found or any requested key is missing,
        otherwise abs(union estimate - sum of individual estimates)
    """
    if not arrays or len(arrays) < requested:
        return 0

    union = estimate(merge_all(arrays))
    total = sum(estimate(arr) for arr in arrays)
    return abs(union - total)
