"""Domain models for the storage service."""

from procstore.models.document import DocumentRecord, DocumentState, derive_state

__all__ = ["DocumentRecord", "DocumentState", "derive_state"]
