"""
In-memory register store.

Keeps one RegisterArray per key in a dict. Used as the test double and for
single-process use where durability does not matter.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from hllstore.sketches.registers import RegisterArray
from hllstore.storage.base import RegisterStore


class MemoryRegisterStore(RegisterStore):
    """
    Dict-backed RegisterStore.

    Fetches return copies, so callers can never mutate stored registers.
    """

    def __init__(self):
        self._arrays: Dict[str, RegisterArray] = {}

    async def max_update(self, key: str, updates: Dict[int, int]) -> int:
        registers = self._arrays.get(key)
        if registers is None:
            return 0
        registers.update_many(updates)
        return 1

    async def ensure_exists(self, key: str, registers: RegisterArray) -> None:
        if key not in self._arrays:
            self._arrays[key] = registers.copy()

    async def fetch_one(self, key: str) -> Optional[RegisterArray]:
        registers = self._arrays.get(key)
        return registers.copy() if registers is not None else None

    async def fetch_many(self, keys: Sequence[str]) -> List[Tuple[str, RegisterArray]]:
        return [
            (key, self._arrays[key].copy())
            for key in dict.fromkeys(keys)
            if key in self._arrays
        ]

    def keys(self) -> List[str]:
        return list(self._arrays)

    def __contains__(self, key: str) -> bool:
        return key in self._arrays

    def __len__(self) -> int:
        return len(self._arrays)
