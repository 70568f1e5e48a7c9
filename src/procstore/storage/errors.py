"""Content storage error types.

All errors are fail-closed: an operation that cannot complete safely raises.
"""

from __future__ import annotations


class ContentStorageError(Exception):
    """Base exception for content storage operations.

    Attributes:
        message: Human-readable error message.
        document_id: Document id associated with the operation (if applicable).
    """

    def __init__(self, message: str, *, document_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.document_id = document_id

    def __str__(self) -> str:
        if self.document_id:
            return f"{self.message} document_id={self.document_id}"
        return self.message


class PathTraversalError(ContentStorageError):
    """Raised when a document id cannot be mapped to a path inside the root.

    Ids with separators, dots or other unsafe characters could escape the
    storage root and are rejected before any filesystem access.
    """

    def __init__(
        self,
        message: str = "Invalid document id: unsafe characters detected",
        *,
        document_id: str | None = None,
    ) -> None:
        super().__init__(message, document_id=document_id)


class ContentReadError(ContentStorageError):
    """Raised when the incoming stream cannot be fully consumed."""

    def __init__(
        self,
        message: str = "Failed to read incoming content",
        *,
        document_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, document_id=document_id)
        self.cause = cause


class ContentTooLargeError(ContentStorageError):
    """Raised when a stream yields more bytes than the allowed limit."""

    def __init__(
        self,
        limit: int,
        *,
        document_id: str | None = None,
    ) -> None:
        super().__init__(f"Content exceeds {limit} bytes", document_id=document_id)
        self.limit = limit


class StorageBackendError(ContentStorageError):
    """Raised when the filesystem cannot complete an operation.

    Indicates an environment problem (disk full, permission denied, I/O error)
    rather than bad input.
    """

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        document_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, document_id=document_id)
        self.cause = cause
