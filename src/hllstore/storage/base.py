"""
Register store interface.

The estimator and batcher only ever talk to a store through these four
operations. Correctness relies on max_update being an atomic per-register
maximum, not on any locking across calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from hllstore.sketches.registers import RegisterArray


class RegisterStore(ABC):
    """Abstract base class for register array stores."""

    @abstractmethod
    async def max_update(self, key: str, updates: Dict[int, int]) -> int:
        """
        Raise each listed register of an existing key to its rank.

        Args:
            key: Sketch key
            updates: Mapping of bucket -> rank

        Returns:
            Number of matched documents (0 if the key does not exist)
        """
        pass

    @abstractmethod
    async def ensure_exists(self, key: str, registers: RegisterArray) -> None:
        """Insert registers for key only if the key does not exist yet."""
        pass

    @abstractmethod
    async def fetch_one(self, key: str) -> Optional[RegisterArray]:
        """Fetch the register array for key, or None if not found."""
        pass

    @abstractmethod
    async def fetch_many(self, keys: Sequence[str]) -> List[Tuple[str, RegisterArray]]:
        """Fetch (key, registers) for the keys that exist."""
        pass

    async def close(self) -> None:
        """Release any resources held by the store."""
        pass
