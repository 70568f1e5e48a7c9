"""Storage service FastAPI application factory."""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy import Engine
from starlette.exceptions import HTTPException

from procstore import __version__
from procstore.api.errors import (
    document_error_handler,
    generic_exception_handler,
    http_exception_handler,
    request_validation_error_handler,
)
from procstore.api.middleware.request_id import RequestIdMiddleware
from procstore.api.routes.command import router as command_router
from procstore.api.routes.health import router as health_router
from procstore.api.routes.storage import router as storage_router
from procstore.config import StorageSettings, load_settings_from_env
from procstore.observability.tracing import configure_tracing
from procstore.persistence.db import get_engine, is_database_configured
from procstore.services.documents.errors import DocumentError
from procstore.storage.content_store import ContentStore
from procstore.storage.filesystem_store import FilesystemContentStore

logger = logging.getLogger(__name__)


def create_app(
    settings: StorageSettings | None = None,
    engine: Engine | None = None,
    content_store: ContentStore | None = None,
) -> FastAPI:
    """Create and configure the storage FastAPI application.

    This factory:
    - Loads settings from the environment unless given
    - Uses the SQL repository when an engine is given or PROCSTORE_DATABASE_URL
      is set, otherwise the in-memory fallback
    - Registers the request ID middleware and the exception handlers
    - Mounts the health, storage and command routers

    Args:
        settings: Storage settings. If None, read from environment.
        engine: SQLAlchemy engine for document metadata.
        content_store: Content backend. If None, a FilesystemContentStore
            rooted at ``settings.folder``.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = load_settings_from_env()
    if engine is None and is_database_configured():
        engine = get_engine()
    if content_store is None:
        content_store = FilesystemContentStore(settings.folder, algorithm=settings.hash_algorithm)

    app = FastAPI(
        title="Procurement Document Storage",
        description="Registration, upload, publication and download of procurement documents",
        version=__version__,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.content_store = content_store

    configure_tracing()

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(DocumentError, document_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(storage_router)
    app.include_router(command_router)

    logger.info(
        "Storage API created: backend=%s metadata=%s",
        content_store.backend_name,
        "sql" if engine is not None else "in-memory",
    )
    return app
