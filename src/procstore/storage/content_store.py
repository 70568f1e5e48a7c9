"""Content store interface.

Defines the ContentStore contract that storage backends implement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

from procstore.storage.models import StagedContent


class ContentStore(ABC):
    """Abstract base class for document content backends.

    Writes are two-phase: ``stage`` streams bytes to a temporary location
    while computing the digest, then ``commit`` moves them into place or
    ``discard`` drops them. Nothing is visible at the target path until commit.

    Implementations:
    - FilesystemContentStore: sharded local filesystem
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for observability."""
        ...

    @abstractmethod
    def path_for(self, document_id: str) -> Path:
        """Return the location content for ``document_id`` is stored at."""
        ...

    @abstractmethod
    def stage(
        self,
        document_id: str,
        stream: BinaryIO,
        *,
        max_bytes: int | None = None,
    ) -> StagedContent:
        """Write a stream to a temporary location, hashing it on the way.

        Args:
            document_id: Document the content belongs to.
            stream: Readable binary stream, consumed exactly once.
            max_bytes: Abort once more than this many bytes were read.

        Returns:
            StagedContent with digest and size.

        Raises:
            ContentReadError: If the source stream fails.
            ContentTooLargeError: If the stream exceeds ``max_bytes``.
            StorageBackendError: If the temporary file cannot be written.
        """
        ...

    @abstractmethod
    def commit(self, document_id: str, staged: StagedContent) -> Path:
        """Move staged content to its final location and return that path.

        Raises:
            StorageBackendError: If the move fails.
        """
        ...

    @abstractmethod
    def discard(self, document_id: str, staged: StagedContent) -> None:
        """Remove staged content that will not be committed."""
        ...

    @abstractmethod
    def open_stream(self, document_id: str, content_path: str | Path) -> BinaryIO:
        """Open stored content for reading.

        Raises:
            StorageBackendError: If the content cannot be opened.
        """
        ...
