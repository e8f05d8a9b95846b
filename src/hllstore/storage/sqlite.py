"""
SQLite register store.

Persists each key's registers durably on disk. A sketch is one row in
``sketches`` plus one row per observed register in ``registers``; empty
registers are not stored. The per-register maximum is a single atomic
upsert:

    INSERT ... ON CONFLICT(key, bucket) DO UPDATE
        SET rank_value = MAX(rank_value, excluded.rank_value)

Blocking sqlite3 calls run in worker threads via asyncio.to_thread, each
thread with its own connection.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from hllstore.exceptions import StoreError
from hllstore.sketches.registers import NUM_REGISTERS, RegisterArray
from hllstore.storage.base import RegisterStore

logger = logging.getLogger(__name__)


class SQLiteRegisterStore(RegisterStore):
    """
    SQLite-backed RegisterStore.

    Tables:
    - sketches: one row per key
    - registers: (key, bucket) -> rank, only for non-empty registers

    Example:
        >>> store = SQLiteRegisterStore("counts.db")
        >>> await store.ensure_exists("visitors", RegisterArray.empty())
        >>> await store.max_update("visitors", {42: 3})
        1
    """

    def __init__(self, db_path: str = "hllstore.db", timeout: float = 30.0):
        """
        Initialize the store and create the schema.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds to wait on a locked database

        Raises:
            ValueError: For ":memory:", which would give every worker
                thread its own empty database
        """
        if str(db_path) == ":memory:" or str(db_path).startswith("file::memory:"):
            raise ValueError("SQLiteRegisterStore needs a database file, not ':memory:'")

        self.db_path = Path(db_path)
        self.timeout = timeout
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self._init_schema()
        logger.info(f"SQLite register store ready at {self.db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        conn = getattr(self._local, "connection", None)
        if conn is None:
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self.timeout,
                check_same_thread=False,
                isolation_level=None,  # explicit BEGIN/COMMIT below
            )
            conn.execute("PRAGMA foreign_keys = ON")
            self._local.connection = conn
            with self._connections_lock:
                self._connections.append(conn)
        return conn

    @contextmanager
    def transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        try:
            yield conn
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise

    def _init_schema(self) -> None:
        """Initialize database schema."""
        try:
            with self.transaction(immediate=True) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS sketches (
                        key TEXT PRIMARY KEY,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS registers (
                        key TEXT NOT NULL,
                        bucket INTEGER NOT NULL,
                        rank_value INTEGER NOT NULL,
                        PRIMARY KEY (key, bucket),
                        FOREIGN KEY (key) REFERENCES sketches(key) ON DELETE CASCADE
                    )
                """)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialize schema at {self.db_path}: {e}") from e

    # ========== Blocking implementations ==========

    def _max_update(self, key: str, updates: Dict[int, int]) -> int:
        with self.transaction(immediate=True) as conn:
            row = conn.execute(
                "SELECT 1 FROM sketches WHERE key = ?", (key,)
            ).fetchone()
            if row is None:
                return 0
            conn.executemany(
                """
                INSERT INTO registers (key, bucket, rank_value)
                VALUES (?, ?, ?)
                ON CONFLICT(key, bucket) DO UPDATE
                    SET rank_value = MAX(rank_value, excluded.rank_value)
                """,
                [(key, int(bucket), int(rank)) for bucket, rank in updates.items()],
            )
            return 1

    def _ensure_exists(self, key: str, registers: RegisterArray) -> None:
        with self.transaction(immediate=True) as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO sketches (key) VALUES (?)", (key,)
            )
            if cursor.rowcount == 0:
                return
            buckets = np.flatnonzero(registers.values)
            conn.executemany(
                "INSERT INTO registers (key, bucket, rank_value) VALUES (?, ?, ?)",
                [(key, int(b), registers[int(b)]) for b in buckets],
            )

    def _fetch_many(self, keys: Sequence[str]) -> List[Tuple[str, RegisterArray]]:
        unique_keys = list(dict.fromkeys(keys))
        if not unique_keys:
            return []

        placeholders = ",".join("?" for _ in unique_keys)
        with self.transaction() as conn:
            found = {
                row[0]
                for row in conn.execute(
                    f"SELECT key FROM sketches WHERE key IN ({placeholders})",
                    unique_keys,
                )
            }
            arrays = {key: np.zeros(NUM_REGISTERS, dtype=np.uint8) for key in found}
            for key, bucket, rank in conn.execute(
                f"SELECT key, bucket, rank_value FROM registers WHERE key IN ({placeholders})",
                unique_keys,
            ):
                arrays[key][bucket] = rank

        return [(key, RegisterArray(arrays[key])) for key in unique_keys if key in arrays]

    def _delete(self, key: str) -> bool:
        with self.transaction(immediate=True) as conn:
            cursor = conn.execute("DELETE FROM sketches WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def _keys(self) -> List[str]:
        conn = self._get_connection()
        return [row[0] for row in conn.execute("SELECT key FROM sketches ORDER BY key")]

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as e:
            raise StoreError(f"SQLite error in {func.__name__.lstrip('_')}: {e}") from e

    # ========== RegisterStore ==========

    async def max_update(self, key: str, updates: Dict[int, int]) -> int:
        return await self._run(self._max_update, key, updates)

    async def ensure_exists(self, key: str, registers: RegisterArray) -> None:
        await self._run(self._ensure_exists, key, registers)

    async def fetch_one(self, key: str) -> Optional[RegisterArray]:
        found = await self._run(self._fetch_many, [key])
        return found[0][1] if found else None

    async def fetch_many(self, keys: Sequence[str]) -> List[Tuple[str, RegisterArray]]:
        return await self._run(self._fetch_many, keys)

    async def delete(self, key: str) -> bool:
        """Delete a key and its registers. Returns True if it existed."""
        return await self._run(self._delete, key)

    async def keys(self) -> List[str]:
        """All stored keys, sorted."""
        return await self._run(self._keys)

    async def close(self) -> None:
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        self._local = threading.local()
        logger.info(f"Closed {len(connections)} SQLite connection(s) to {self.db_path}")
