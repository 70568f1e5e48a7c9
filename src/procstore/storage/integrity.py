"""Content digest computation and verification.

Digests are reported as uppercase hex, which is also how expected hashes are
stored at registration.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import BinaryIO

DEFAULT_ALGORITHM = "md5"
CHUNK_SIZE = 64 * 1024


def is_supported_algorithm(algorithm: str) -> bool:
    """True for hashlib algorithms with a fixed-length digest.

    Example:
        >>> is_supported_algorithm("sha256"), is_supported_algorithm("shake_128")
        (True, False)
    """
    if algorithm not in hashlib.algorithms_available:
        return False
    try:
        return hashlib.new(algorithm).digest_size > 0
    except ValueError:
        return False


def normalize_digest(value: str) -> str:
    """Normalize a hex digest for comparison (strip, uppercase)."""
    return value.strip().upper()


class ContentDigest:
    """Incremental digest over a byte stream.

    Wraps a hashlib object and counts the bytes fed to it, so a single pass
    over an upload both hashes and sizes it.
    """

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM) -> None:
        """Create an empty digest.

        Raises:
            ValueError: Unknown algorithm, or one without a fixed digest length.
        """
        self._algorithm = algorithm
        self._hasher = hashlib.new(algorithm)
        if self._hasher.digest_size == 0:
            raise ValueError(f"Variable-length digest not supported: {algorithm}")
        self._size = 0

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def size_bytes(self) -> int:
        return self._size

    def update(self, chunk: bytes) -> None:
        self._hasher.update(chunk)
        self._size += len(chunk)

    def hexdigest(self) -> str:
        """Return the uppercase hex digest of everything fed so far."""
        return self._hasher.hexdigest().upper()


def compute_digest(
    stream: BinaryIO,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = CHUNK_SIZE,
) -> str:
    """Compute the uppercase hex digest of a stream, reading it to the end."""
    digest = ContentDigest(algorithm)
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        digest.update(chunk)
    return digest.hexdigest()


def verify_digest(actual: str, expected: str) -> bool:
    """Compare two hex digests case-insensitively in constant time.

    Declared hashes are caller input and may hold any characters, so both
    sides are compared as UTF-8 bytes.
    """
    return hmac.compare_digest(
        normalize_digest(actual).encode("utf-8"),
        normalize_digest(expected).encode("utf-8"),
    )
