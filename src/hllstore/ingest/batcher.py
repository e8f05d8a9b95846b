"""
Write Batcher - Coalesce adds in memory and flush them to the store.

Adds for the same key and bucket collapse into a single max rank, so a
burst of adds costs one store round trip per key per flush instead of one
per add.

Flush protocol:
1. Snapshot-and-clear the pending map in one synchronous step
2. For each key, concurrently: max_update; if nothing matched, insert an
   empty register array (only if absent) and max_update again
3. A failed key is logged and reported through on_error; it never
   affects other keys and never propagates out of flush()

The periodic loop waits the flush interval, flushes, and only then starts
waiting again, so cycles never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from hllstore.exceptions import BatchWriteError, CounterClosedError
from hllstore.sketches.hashing import HashAssigner
from hllstore.sketches.registers import RegisterArray
from hllstore.storage.base import RegisterStore

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[BatchWriteError], None]


class WriteBatcher:
    """
    Buffers (bucket, rank) updates per key and writes them in batches.

    Example:
        >>> batcher = WriteBatcher(MemoryRegisterStore(), HashAssigner())
        >>> await batcher.add("visitors", "10.0.0.1")
        >>> await batcher.flush()
        >>> await batcher.close()
    """

    def __init__(
        self,
        store: RegisterStore,
        assigner: Optional[HashAssigner] = None,
        flush_interval_ms: int = 1000,
        immediate_flush: bool = False,
        on_error: Optional[ErrorCallback] = None,
    ):
        if flush_interval_ms <= 0:
            raise ValueError(f"flush_interval_ms must be positive, got {flush_interval_ms}")

        self.store = store
        self.assigner = assigner or HashAssigner()
        self.flush_interval_ms = flush_interval_ms
        self.immediate_flush = immediate_flush
        self._on_error = on_error

        # key -> {bucket: max rank since last flush}
        self._pending: Dict[str, Dict[int, int]] = {}

        self._loop_task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None
        self._closed = False

        # Metrics
        self._flushes = 0
        self._keys_written = 0
        self._write_errors = 0

    @property
    def pending_keys(self) -> List[str]:
        """Keys with updates waiting for the next flush."""
        return list(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed

    async def add(self, key: str, value: str) -> None:
        """
        Record a value for a key.

        Without immediate_flush this only touches memory; the periodic loop
        writes it later. With immediate_flush it waits for a full flush.
        Store failures are never raised here.

        Raises:
            CounterClosedError: If the batcher has been closed
        """
        if self._closed:
            raise CounterClosedError(f"Cannot add to '{key}': counter is closed")

        bucket, rank = self.assigner.assign(value)
        pending = self._pending.setdefault(key, {})
        if rank > pending.get(bucket, 0):
            pending[bucket] = rank

        if self.immediate_flush:
            await self.flush()
        else:
            self._ensure_running()

    async def flush(self) -> None:
        """Write all pending updates and wait for every key to settle."""
        # No await between read and reset: adds land either here or in the next flush
        pending, self._pending = self._pending, {}
        if not pending:
            return

        logger.debug(f"Flushing {len(pending)} key(s)")
        await asyncio.gather(
            *(self._write_key(key, updates) for key, updates in pending.items())
        )
        self._flushes += 1

    async def _write_key(self, key: str, updates: Dict[int, int]) -> None:
        """Two-phase write for one key. Never raises Exception."""
        try:
            matched = await self.store.max_update(key, updates)
            if not matched:
                await self.store.ensure_exists(key, RegisterArray.empty())
                await self.store.max_update(key, updates)
            self._keys_written += 1
        except Exception as e:
            self._write_errors += 1
            logger.warning(
                f"Failed to write {len(updates)} register(s) for key '{key}': {e}"
            )
            self._report(BatchWriteError(key, e))

    def _report(self, error: BatchWriteError) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            logger.exception(f"Error callback failed for key '{error.key}'")

    def _ensure_running(self) -> None:
        """Start the periodic flush loop if it is not running."""
        if self._loop_task is not None and not self._loop_task.done():
            return
        self._stop = asyncio.Event()
        self._loop_task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        logger.info(f"Flush loop started ({self.flush_interval_ms} ms interval)")
        interval = self.flush_interval_ms / 1000.0
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                await self.flush()
        logger.info("Flush loop stopped")

    async def close(self) -> None:
        """
        Stop the periodic loop, flush what is left, and wait for it.

        A flush already running in the loop is allowed to finish; store
        calls already dispatched are never cancelled. A loop task that
        already ended, e.g. cancelled when an earlier event loop shut
        down, is not awaited.
        """
        if self._closed:
            return
        self._closed = True

        task, self._loop_task = self._loop_task, None
        try:
            if (
                task is not None
                and not task.done()
                and task.get_loop() is asyncio.get_running_loop()
            ):
                self._stop.set()
                await task
            elif task is not None and not task.done():
                logger.warning("Flush loop belongs to another event loop; not waiting for it")
        finally:
            await self.flush()

    def get_metrics(self) -> Dict:
        """Get current batcher metrics."""
        return {
            "flushes": self._flushes,
            "keys_written": self._keys_written,
            "write_errors": self._write_errors,
            "pending_keys": len(self._pending),
            "immediate_flush": self.immediate_flush,
            "flush_interval_ms": self.flush_interval_ms,
        }
