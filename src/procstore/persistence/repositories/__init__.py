"""Persistence repositories.

Provides document metadata access backed by SQL, with an in-memory fallback
for development/testing.
"""

from procstore.persistence.repositories.documents import (
    DocumentRepository,
    DocumentsRepository,
    InMemoryDocumentsRepository,
    clear_in_memory_store,
    get_documents_repository,
)

__all__ = [
    "DocumentRepository",
    "DocumentsRepository",
    "InMemoryDocumentsRepository",
    "clear_in_memory_store",
    "get_documents_repository",
]
