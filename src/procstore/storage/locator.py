"""Deterministic sharded placement of document content.

Content for id ``abcdef...`` lives at ``<root>/ab/cd/abcdef...``. Two levels
of two-character buckets keep every directory at no more than 256 entries per
level for hex-like ids, however many documents are stored.
"""

from __future__ import annotations

import re
from pathlib import Path

from procstore.storage.errors import PathTraversalError

SHARD_WIDTH = 2
SHARD_DEPTH = 2

_SAFE_ID_PATTERN = re.compile(r"[A-Za-z0-9_\-]+")


def shard_parts(document_id: str) -> tuple[str, ...]:
    """Return the bucket directory names for a document id.

    Raises:
        PathTraversalError: If the id is too short or contains unsafe characters.
    """
    if len(document_id) < SHARD_WIDTH * SHARD_DEPTH:
        raise PathTraversalError(
            message="Invalid document id: too short to shard",
            document_id=document_id,
        )
    if not _SAFE_ID_PATTERN.fullmatch(document_id):
        raise PathTraversalError(document_id=document_id)

    return tuple(
        document_id[level * SHARD_WIDTH : (level + 1) * SHARD_WIDTH]
        for level in range(SHARD_DEPTH)
    )


def locate(document_id: str, root: str | Path) -> Path:
    """Map a document id to its content path under ``root``.

    Pure function: no filesystem access, so it works before the bucket
    directories exist.

    Args:
        document_id: Document id.
        root: Storage root directory.

    Returns:
        ``root / id[0:2] / id[2:4] / id``.

    Example:
        >>> locate("0a1b2c3d", "/data").as_posix()
        '/data/0a/1b/0a1b2c3d'
    """
    return Path(root).joinpath(*shard_parts(document_id), document_id)
