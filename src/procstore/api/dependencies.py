"""FastAPI dependencies wiring the lifecycle service to app state.

The application stores its StorageSettings, ContentStore and (optional)
SQLAlchemy engine on ``app.state``; each request builds its own repository
and service from them.

Transactions follow what reaches the dependency. An exception raised out of a
route rolls the transaction back, except a DocumentValidationError, which is
committed so that earlier writes in the request stand. POST /command answers
its own failures, incidents included, in the response body, so its
transaction is committed unless an unexpected exception escapes.
"""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Request

from procstore.config import StorageSettings
from procstore.persistence.repositories.documents import (
    DocumentRepository,
    get_documents_repository,
)
from procstore.services.documents.batch import BatchWorkflowProcessor
from procstore.services.documents.errors import DocumentValidationError
from procstore.services.documents.service import DocumentLifecycleService
from procstore.storage.content_store import ContentStore


def get_settings(request: Request) -> StorageSettings:
    settings: StorageSettings = request.app.state.settings
    return settings


def get_content_store(request: Request) -> ContentStore:
    content_store: ContentStore = request.app.state.content_store
    return content_store


def get_repository(request: Request) -> Generator[DocumentRepository, None, None]:
    """Yield a request-scoped documents repository.

    Uses the SQL repository inside a transaction when the app has an engine,
    otherwise the in-memory fallback.
    """
    engine = request.app.state.engine
    if engine is None:
        yield get_documents_repository(None)
        return

    with engine.connect() as conn:
        trans = conn.begin()
        try:
            yield get_documents_repository(conn)
        except DocumentValidationError:
            trans.commit()
            raise
        except Exception:
            trans.rollback()
            raise
        else:
            trans.commit()


def get_lifecycle_service(
    repository: Annotated[DocumentRepository, Depends(get_repository)],
    content_store: Annotated[ContentStore, Depends(get_content_store)],
    settings: Annotated[StorageSettings, Depends(get_settings)],
) -> DocumentLifecycleService:
    return DocumentLifecycleService(repository, content_store, settings)


def get_batch_processor(
    service: Annotated[DocumentLifecycleService, Depends(get_lifecycle_service)],
) -> BatchWorkflowProcessor:
    return BatchWorkflowProcessor(service)


LifecycleServiceDep = Annotated[DocumentLifecycleService, Depends(get_lifecycle_service)]
BatchProcessorDep = Annotated[BatchWorkflowProcessor, Depends(get_batch_processor)]
