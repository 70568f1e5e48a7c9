"""Filesystem content storage backend.

Stores each document's bytes at its sharded path under a root directory:

    {root}/{id[0:2]}/{id[2:4]}/{id}

Writes go to a uniquely named temporary file in the same bucket directory and
are moved into place with an atomic rename, so readers never observe partial
content and a rejected upload leaves nothing behind.

Environment Variables:
    PROCSTORE_UPLOAD_FOLDER: Storage root used when none is passed explicitly
        (see procstore.config).
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import BinaryIO

from procstore.storage.content_store import ContentStore
from procstore.storage.errors import (
    ContentReadError,
    ContentTooLargeError,
    PathTraversalError,
    StorageBackendError,
)
from procstore.storage.integrity import CHUNK_SIZE, DEFAULT_ALGORITHM, ContentDigest
from procstore.storage.locator import locate
from procstore.storage.models import StagedContent
from procstore.storage.tracing import traced_content_operation

logger = logging.getLogger(__name__)

_TEMP_SUFFIX = ".part"


class FilesystemContentStore(ContentStore):
    """Filesystem-based content store with sharded placement."""

    def __init__(
        self,
        root: str | Path,
        *,
        algorithm: str = DEFAULT_ALGORITHM,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        """Initialize filesystem storage.

        Args:
            root: Storage root directory. Created lazily on first write.
            algorithm: hashlib algorithm used while staging.
            chunk_size: Read size for streaming copies.
        """
        self._root = Path(root).resolve()
        self._algorithm = algorithm
        self._chunk_size = chunk_size
        logger.debug("FilesystemContentStore initialized with root=%s", self._root)

    @property
    def backend_name(self) -> str:
        return "filesystem"

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, document_id: str) -> Path:
        return locate(document_id, self._root)

    def ensure_directory(self, path: Path, document_id: str | None = None) -> None:
        """Create ``path`` and its parents if absent. Idempotent."""
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to create directory: {e}",
                document_id=document_id,
                cause=e,
            ) from e

    def _ensure_within_root(self, path: Path, document_id: str) -> None:
        """Ensure a content path resolves within the storage root."""
        try:
            path.resolve().relative_to(self._root)
        except ValueError as e:
            raise PathTraversalError(
                message="Path resolves outside storage root",
                document_id=document_id,
            ) from e

    @traced_content_operation("stage")
    def stage(
        self,
        document_id: str,
        stream: BinaryIO,
        *,
        max_bytes: int | None = None,
    ) -> StagedContent:
        """Stream content into a temporary file next to its target path."""
        target = self.path_for(document_id)
        self.ensure_directory(target.parent, document_id)
        temp_path = target.with_name(f"{target.name}.{uuid.uuid4().hex}{_TEMP_SUFFIX}")

        digest = ContentDigest(self._algorithm)
        try:
            with temp_path.open("wb") as sink:
                while True:
                    try:
                        chunk = stream.read(self._chunk_size)
                    except OSError as e:
                        raise ContentReadError(
                            message=f"Failed to read incoming content: {e}",
                            document_id=document_id,
                            cause=e,
                        ) from e
                    if not chunk:
                        break
                    digest.update(chunk)
                    if max_bytes is not None and digest.size_bytes > max_bytes:
                        raise ContentTooLargeError(max_bytes, document_id=document_id)
                    sink.write(chunk)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StorageBackendError(
                message=f"Failed to write content: {e}",
                document_id=document_id,
                cause=e,
            ) from e
        except (ContentReadError, ContentTooLargeError):
            temp_path.unlink(missing_ok=True)
            raise

        staged = StagedContent(
            document_id=document_id,
            temp_path=temp_path,
            target_path=target,
            digest=digest.hexdigest(),
            size_bytes=digest.size_bytes,
        )
        logger.debug(
            "Staged content: document_id=%s size=%d digest=%s",
            document_id,
            staged.size_bytes,
            staged.digest,
        )
        return staged

    @traced_content_operation("commit")
    def commit(self, document_id: str, staged: StagedContent) -> Path:
        """Atomically move staged content to its target path."""
        self._ensure_within_root(staged.target_path, document_id)
        try:
            staged.temp_path.replace(staged.target_path)
        except OSError as e:
            staged.temp_path.unlink(missing_ok=True)
            raise StorageBackendError(
                message=f"Failed to move content into place: {e}",
                document_id=document_id,
                cause=e,
            ) from e

        logger.debug("Committed content: document_id=%s", document_id)
        return staged.target_path

    @traced_content_operation("discard")
    def discard(self, document_id: str, staged: StagedContent) -> None:
        """Delete staged content. Missing temp files are ignored."""
        try:
            staged.temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(
                "Failed to discard staged content: document_id=%s error=%s",
                document_id,
                e,
            )

    @traced_content_operation("open")
    def open_stream(self, document_id: str, content_path: str | Path) -> BinaryIO:
        """Open stored content for binary reading."""
        path = Path(content_path)
        self._ensure_within_root(path, document_id)
        try:
            return path.open("rb")
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to open content: {e}",
                document_id=document_id,
                cause=e,
            ) from e
