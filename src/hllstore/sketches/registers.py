"""
Register Array - Fixed-size mergeable array of per-bucket maximum ranks.

Each of the 2^14 registers holds a rank in [0, 32], 0 meaning the bucket
has never been observed. Merging takes the register-wise maximum, which
is commutative, associative and idempotent, so updates can arrive late,
twice, or out of order and still converge.

Memory: 16KB per array (one uint8 per register)
"""

from __future__ import annotations

from functools import reduce
from typing import Iterable, Sequence

import numpy as np

PRECISION = 14
NUM_REGISTERS = 1 << PRECISION  # m = 16384
MAX_RANK = 32


def merge_register(current: int, candidate: int) -> int:
    """Merge a candidate rank into a register."""
    return max(current, candidate)


class RegisterArray:
    """
    The sketch for one key.

    Example:
        >>> a = RegisterArray.empty()
        >>> a.update(7, 3)
        >>> a[7]
        3
        >>> a.zero_count()
        16383
    """

    __slots__ = ("_registers",)

    def __init__(self, registers: np.ndarray):
        if registers.shape != (NUM_REGISTERS,):
            raise ValueError(
                f"Register array must hold {NUM_REGISTERS} registers, "
                f"got shape {registers.shape}"
            )
        self._registers = registers.astype(np.uint8, copy=False)

    @classmethod
    def empty(cls) -> RegisterArray:
        """All registers unobserved."""
        return cls(np.zeros(NUM_REGISTERS, dtype=np.uint8))

    @classmethod
    def from_iterable(cls, values: Iterable[int]) -> RegisterArray:
        """Build from a sequence of m ranks."""
        registers = np.fromiter(values, dtype=np.int64)
        if registers.size and (registers.min() < 0 or registers.max() > MAX_RANK):
            raise ValueError(f"Register values must be in [0, {MAX_RANK}]")
        return cls(registers.astype(np.uint8))

    @classmethod
    def from_bytes(cls, data: bytes) -> RegisterArray:
        """Deserialize from one byte per register."""
        if len(data) != NUM_REGISTERS:
            raise ValueError(
                f"Expected {NUM_REGISTERS} bytes, got {len(data)}"
            )
        return cls(np.frombuffer(data, dtype=np.uint8).copy())

    def to_bytes(self) -> bytes:
        """Serialize to one byte per register."""
        return self._registers.tobytes()

    @property
    def values(self) -> np.ndarray:
        """Read-only view of the registers."""
        view = self._registers.view()
        view.flags.writeable = False
        return view

    def update(self, bucket: int, rank: int) -> None:
        """Raise one register to rank if rank is larger."""
        if not 0 <= rank <= MAX_RANK:
            raise ValueError(f"Rank must be in [0, {MAX_RANK}], got {rank}")
        self._registers[bucket] = merge_register(int(self._registers[bucket]), rank)

    def update_many(self, updates: dict) -> None:
        """Apply a {bucket: rank} mapping."""
        for bucket, rank in updates.items():
            self.update(bucket, rank)

    def merge(self, other: RegisterArray) -> RegisterArray:
        """Merge another array into this one, in place. Returns self."""
        np.maximum(self._registers, other._registers, out=self._registers)
        return self

    def copy(self) -> RegisterArray:
        return RegisterArray(self._registers.copy())

    def zero_count(self) -> int:
        """Number of registers still at 0."""
        return int(NUM_REGISTERS - np.count_nonzero(self._registers))

    def __getitem__(self, bucket: int) -> int:
        return int(self._registers[bucket])

    def __len__(self) -> int:
        return NUM_REGISTERS

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegisterArray):
            return NotImplemented
        return bool(np.array_equal(self._registers, other._registers))

    def __repr__(self) -> str:
        return f"RegisterArray(observed={NUM_REGISTERS - self.zero_count()})"


def merge_arrays(a: RegisterArray, b: RegisterArray) -> RegisterArray:
    """Register-wise maximum of two arrays, as a new array."""
    return a.copy().merge(b)


def merge_all(arrays: Sequence[RegisterArray]) -> RegisterArray:
    """Register-wise maximum of any number of arrays (empty if none)."""
    return reduce(lambda acc, arr: acc.merge(arr), arrays, RegisterArray.empty())
