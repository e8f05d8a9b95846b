"""
Exceptions raised by hllstore.
"""

from __future__ import annotations


class HLLStoreError(Exception):
    """Base class for all hllstore errors."""


class StoreError(HLLStoreError):
    """A register store backend failed to read or write."""


class CounterClosedError(HLLStoreError):
    """Raised when adding to a counter that has already been closed."""


class InvalidDigestError(HLLStoreError, ValueError):
    """Raised when a hash function returns fewer than 64 bits."""


class BatchWriteError(HLLStoreError):
    """
    A flush failed to write the pending registers of one key.

    Delivered to error handlers instead of being raised. The underlying
    exception is available as ``error`` (and as ``__cause__``).
    """

    def __init__(self, key: str, error: BaseException):
        super().__init__(f"Failed to write registers for key '{key}': {error}")
        self.key = key
        self.error = error
        self.__cause__ = error
