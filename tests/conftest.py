"""
Shared fixtures for hllstore tests.
"""

import asyncio
from typing import Dict, Set

import pytest

from hllstore.storage import MemoryRegisterStore, SQLiteRegisterStore


def pytest_configure(config):
    """Add markers to the pytest configuration."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


class FlakyStore(MemoryRegisterStore):
    """
    MemoryRegisterStore that fails writes for selected keys.

    failing_keys fail every max_update, failing_ensure_keys fail
    ensure_exists, and failing_retry_keys fail the max_update that follows
    ensure_exists.

    Counts every call so tests can check what the batcher did.
    """

    def __init__(self, failing_keys: Set[str] = frozenset(), fail_reads: bool = False):
        super().__init__()
        self.failing_keys = set(failing_keys)
        self.failing_ensure_keys: Set[str] = set()
        self.failing_retry_keys: Set[str] = set()
        self._created: Set[str] = set()
        self.fail_reads = fail_reads
        self.calls: Dict[str, int] = {
            "max_update": 0,
            "ensure_exists": 0,
            "fetch_one": 0,
            "fetch_many": 0,
        }

    async def max_update(self, key, updates):
        self.calls["max_update"] += 1
        await asyncio.sleep(0)
        if key in self.failing_keys:
            raise ConnectionError(f"simulated write failure for {key}")
        if key in self.failing_retry_keys and key in self._created:
            raise ConnectionError(f"simulated retry failure for {key}")
        return await super().max_update(key, updates)

    async def ensure_exists(self, key, registers):
        self.calls["ensure_exists"] += 1
        await asyncio.sleep(0)
        if key in self.failing_ensure_keys:
            raise ConnectionError(f"simulated insert failure for {key}")
        self._created.add(key)
        return await super().ensure_exists(key, registers)

    async def fetch_one(self, key):
        self.calls["fetch_one"] += 1
        if self.fail_reads:
            raise ConnectionError("simulated read failure")
        return await super().fetch_one(key)

    async def fetch_many(self, keys):
        self.calls["fetch_many"] += 1
        if self.fail_reads:
            raise ConnectionError("simulated read failure")
        return await super().fetch_many(keys)


@pytest.fixture
def memory_store() -> MemoryRegisterStore:
    return MemoryRegisterStore()


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteRegisterStore:
    store = SQLiteRegisterStore(str(tmp_path / "registers.db"))
    yield store
    asyncio.run(store.close())
