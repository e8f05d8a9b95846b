"""
Ingest Module - Buffered writes of added values into a register store.
"""

from hllstore.ingest.batcher import WriteBatcher

__all__ = [
    "WriteBatcher",
]
