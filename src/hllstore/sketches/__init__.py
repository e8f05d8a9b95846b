"""
hllstore Sketches Module

The probabilistic counting engine. Pure functions and value types only;
nothing here touches a store.

Key structures:
- HashAssigner: value -> (bucket, rank)
- RegisterArray: 16384 mergeable max-rank registers (~16KB)
- estimate: HyperLogLog with linear-counting correction
- union_estimate / intersection_estimate: set algebra over arrays
"""

from hllstore.sketches.hashing import HashAssigner, sha256_digest
from hllstore.sketches.registers import (
    MAX_RANK,
    NUM_REGISTERS,
    PRECISION,
    RegisterArray,
    merge_all,
    merge_arrays,
    merge_register,
)
from hllstore.sketches.estimator import estimate
from hllstore.sketches.algebra import intersection_estimate, union_estimate

__all__ = [
    "HashAssigner",
    "sha256_digest",
    "MAX_RANK",
    "NUM_REGISTERS",
    "PRECISION",
    "RegisterArray",
    "merge_all",
    "merge_arrays",
    "merge_register",
    "estimate",
    "intersection_estimate",
    "union_estimate",
]
