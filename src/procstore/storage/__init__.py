"""Document content storage.

Provides sharded content placement, single-pass digest verification and the
filesystem backend used to persist uploaded bytes.
"""

from procstore.storage.content_store import ContentStore
from procstore.storage.errors import (
    ContentReadError,
    ContentStorageError,
    ContentTooLargeError,
    PathTraversalError,
    StorageBackendError,
)
from procstore.storage.filesystem_store import FilesystemContentStore
from procstore.storage.integrity import ContentDigest, compute_digest, verify_digest
from procstore.storage.locator import locate
from procstore.storage.models import StagedContent

__all__ = [
    "ContentDigest",
    "ContentReadError",
    "ContentStorageError",
    "ContentStore",
    "ContentTooLargeError",
    "FilesystemContentStore",
    "PathTraversalError",
    "StagedContent",
    "StorageBackendError",
    "compute_digest",
    "locate",
    "verify_digest",
]
