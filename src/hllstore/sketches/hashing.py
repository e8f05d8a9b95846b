"""
Hash Assigner - Map a raw value to a (bucket, rank) pair.

The digest is read as two big-endian 32-bit words. The top 14 bits of the
first word select one of 16384 buckets; the leading zeros of the second
word (plus one) give the rank.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Optional, Tuple, Union

from hllstore.exceptions import InvalidDigestError
from hllstore.sketches.registers import MAX_RANK, PRECISION

# A hash function may return raw bytes or a hex string.
Digest = Union[bytes, str]
HashFunction = Callable[[str], Digest]

_WORD_BITS = 32
_BUCKET_SHIFT = _WORD_BITS - PRECISION  # 18


def sha256_digest(value: str) -> bytes:
    """Default hash function: SHA-256 of the UTF-8 encoded value."""
    return hashlib.sha256(value.encode("utf-8")).digest()


def split_digest(digest: Digest) -> Tuple[int, int]:
    """
    Split a digest into its first two 32-bit words.

    Args:
        digest: Raw bytes, or a hexadecimal string

    Returns:
        Tuple of (w1, w2) unsigned integers
    """
    if isinstance(digest, str):
        try:
            digest = bytes.fromhex(digest)
        except ValueError as e:
            raise InvalidDigestError(f"Hash function returned invalid hex: {e}") from e

    if len(digest) < 8:
        raise InvalidDigestError(
            f"Hash digest must be at least 8 bytes, got {len(digest)}"
        )

    w1 = int.from_bytes(digest[0:4], "big")
    w2 = int.from_bytes(digest[4:8], "big")
    return w1, w2


def bucket_of(w1: int) -> int:
    """Top 14 bits of the first word."""
    return w1 >> _BUCKET_SHIFT


def rank_of(w2: int) -> int:
    """Leading zero count of the second word plus one, clamped to MAX_RANK."""
    leading_zeros = _WORD_BITS - w2.bit_length()
    return min(leading_zeros + 1, MAX_RANK)


class HashAssigner:
    """
    Derives (bucket, rank) pairs from values.

    Example:
        >>> assigner = HashAssigner()
        >>> bucket, rank = assigner.assign("10.0.0.1")
        >>> 0 <= bucket < 16384 and 1 <= rank <= 32
        True
    """

    def __init__(self, hash_fn: Optional[HashFunction] = None):
        self.hash_fn: HashFunction = hash_fn or sha256_digest

    def assign(self, value: str) -> Tuple[int, int]:
        """Return the (bucket, rank) for a value."""
        w1, w2 = split_digest(self.hash_fn(value))
        return bucket_of(w1), rank_of(w2)
