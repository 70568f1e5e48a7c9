"""Document lifecycle services."""

from procstore.services.documents.batch import BatchWorkflowProcessor, PublishedDocument
from procstore.services.documents.errors import (
    DocumentError,
    DocumentIncident,
    DocumentValidationError,
    ErrorCode,
)
from procstore.services.documents.service import DocumentLifecycleService, PublishResult

__all__ = [
    "BatchWorkflowProcessor",
    "DocumentError",
    "DocumentIncident",
    "DocumentLifecycleService",
    "DocumentValidationError",
    "ErrorCode",
    "PublishResult",
    "PublishedDocument",
]
