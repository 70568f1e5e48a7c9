"""Document lifecycle error types.

Two families:
- DocumentValidationError: bad input from the caller (bad size, wrong hash,
  unknown id, ...). Reported with a specific code and the offending value.
- DocumentIncident: a broken invariant or environment failure (published
  record without content, unreadable stream, failed write). Logged with full
  context and surfaced to callers as a generic failure.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes for document lifecycle failures."""

    INVALID_SIZE = "INVALID_SIZE"
    INVALID_EXTENSION = "INVALID_EXTENSION"
    INVALID_FILE_ID = "INVALID_FILE_ID"
    INVALID_NAME = "INVALID_NAME"
    INVALID_HASH = "INVALID_HASH"
    EMPTY_FILE = "EMPTY_FILE"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILES_NOT_FOUND = "FILES_NOT_FOUND"
    FILE_IS_CLOSED = "FILE_IS_CLOSED"
    INVALID_ID = "INVALID_ID"
    EMPTY_ARRAY = "EMPTY_ARRAY"
    NO_FILE_ON_SERVER = "NO_FILE_ON_SERVER"
    READ_EXCEPTION = "READ_EXCEPTION"
    WRITE_EXCEPTION = "WRITE_EXCEPTION"


class DocumentError(Exception):
    """Base exception for document lifecycle failures.

    Attributes:
        code: Error code from ErrorCode.
        message: Human-readable error message.
        details: Additional context (offending value, limits, ids).
    """

    is_incident: bool = False

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class DocumentValidationError(DocumentError):
    """User-facing validation failure. Never retried automatically."""


class DocumentIncident(DocumentError):
    """Internal consistency or environment failure."""

    is_incident = True

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(code, message, details)
        self.cause = cause


class InvalidSizeError(DocumentValidationError):
    def __init__(self, size: int | None, limit: int) -> None:
        shown = size if size is not None else f"over {limit}"
        super().__init__(
            ErrorCode.INVALID_SIZE,
            f"Invalid file size {shown}; maximum is {limit}",
            {"size": size, "limit": limit},
        )


class InvalidExtensionError(DocumentValidationError):
    def __init__(self, file_name: str, allowed: Iterable[str]) -> None:
        super().__init__(
            ErrorCode.INVALID_EXTENSION,
            f"Invalid file extension of {file_name!r}",
            {"file_name": file_name, "allowed": sorted(allowed)},
        )


class InvalidFileIdError(DocumentValidationError):
    def __init__(self, file_id: str) -> None:
        super().__init__(
            ErrorCode.INVALID_FILE_ID,
            "Invalid file id; expected a lowercase UUID",
            {"id": file_id},
        )


class InvalidNameError(DocumentValidationError):
    def __init__(self, file_name: str | None, expected: str) -> None:
        super().__init__(
            ErrorCode.INVALID_NAME,
            f"Invalid file name {file_name!r}",
            {"file_name": file_name, "expected": expected},
        )


class InvalidHashError(DocumentValidationError):
    def __init__(self, actual: str, expected: str) -> None:
        super().__init__(
            ErrorCode.INVALID_HASH,
            "Uploaded content does not match the registered hash",
            {"hash": actual, "expected": expected},
        )


class EmptyFileError(DocumentValidationError):
    def __init__(self, file_name: str) -> None:
        super().__init__(
            ErrorCode.EMPTY_FILE,
            f"File {file_name!r} is empty",
            {"file_name": file_name},
        )


class DocumentNotFoundError(DocumentValidationError):
    def __init__(self, document_id: str) -> None:
        super().__init__(
            ErrorCode.FILE_NOT_FOUND,
            f"File {document_id!r} not found",
            {"id": document_id},
        )
        self.document_id = document_id


class DocumentsNotFoundError(DocumentValidationError):
    def __init__(self, missing_ids: Iterable[str]) -> None:
        missing = sorted(missing_ids)
        super().__init__(
            ErrorCode.FILES_NOT_FOUND,
            f"Files not found: {', '.join(missing)}",
            {"ids": missing},
        )
        self.missing_ids = missing


class DocumentClosedError(DocumentValidationError):
    def __init__(self, document_id: str) -> None:
        super().__init__(
            ErrorCode.FILE_IS_CLOSED,
            f"File {document_id!r} is not published",
            {"id": document_id},
        )


class InvalidIdError(DocumentValidationError):
    def __init__(self) -> None:
        super().__init__(
            ErrorCode.INVALID_ID,
            "The id of the document is empty or blank.",
        )


class EmptyArrayError(DocumentValidationError):
    def __init__(self, name: str) -> None:
        super().__init__(
            ErrorCode.EMPTY_ARRAY,
            f"Array {name!r} must not be empty",
            {"name": name},
        )


class NoFileOnServerError(DocumentIncident):
    def __init__(self, document_id: str) -> None:
        super().__init__(
            ErrorCode.NO_FILE_ON_SERVER,
            f"Published file {document_id!r} has no stored content",
            {"id": document_id},
        )


class ContentReadIncident(DocumentIncident):
    def __init__(self, document_id: str, cause: Exception | None = None) -> None:
        super().__init__(
            ErrorCode.READ_EXCEPTION,
            f"Failed to read uploaded content for {document_id!r}",
            {"id": document_id},
            cause,
        )


class ContentWriteIncident(DocumentIncident):
    def __init__(self, document_id: str, cause: Exception | None = None) -> None:
        super().__init__(
            ErrorCode.WRITE_EXCEPTION,
            f"Failed to write content for {document_id!r}",
            {"id": document_id},
            cause,
        )
