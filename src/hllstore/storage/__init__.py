"""
Storage Module - Register array persistence.

Provides the RegisterStore interface plus in-memory and SQLite backends.
"""

from hllstore.storage.base import RegisterStore
from hllstore.storage.memory import MemoryRegisterStore
from hllstore.storage.sqlite import SQLiteRegisterStore

__all__ = [
    "RegisterStore",
    "MemoryRegisterStore",
    "SQLiteRegisterStore",
]
