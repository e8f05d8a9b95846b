"""
hllstore - Store-backed HyperLogLog distinct counting

Estimates the number of distinct values added to named sets without
storing the values, using 16384-register HyperLogLog sketches persisted in
a store that supports atomic per-register maximum updates.

Modules:
- sketches: Hashing, register arrays, estimator, set algebra
- storage: RegisterStore interface, in-memory and SQLite backends
- ingest: Write batcher that coalesces adds into periodic flushes
- api: FastAPI application exposing the counter over HTTP
"""

__version__ = "0.1.0"

from hllstore.config import CounterConfig
from hllstore.counter import HyperLogLogCounter
from hllstore.exceptions import (
    BatchWriteError,
    CounterClosedError,
    HLLStoreError,
    InvalidDigestError,
    StoreError,
)
from hllstore.ingest import WriteBatcher
from hllstore.sketches import HashAssigner, RegisterArray, estimate
from hllstore.storage import MemoryRegisterStore, RegisterStore, SQLiteRegisterStore

__all__ = [
    # Version
    "__version__",
    # Facade
    "HyperLogLogCounter",
    "CounterConfig",
    # Engine
    "HashAssigner",
    "RegisterArray",
    "estimate",
    "WriteBatcher",
    # Storage
    "RegisterStore",
    "MemoryRegisterStore",
    "SQLiteRegisterStore",
    # Errors
    "HLLStoreError",
    "StoreError",
    "BatchWriteError",
    "CounterClosedError",
    "InvalidDigestError",
]
