"""Database connectivity for the document metadata store.

Provides lazy engine creation from the environment.

Environment Variables:
    PROCSTORE_DATABASE_URL: SQLAlchemy connection string. When unset the
        service falls back to the in-memory repository.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

PROCSTORE_DATABASE_URL_ENV = "PROCSTORE_DATABASE_URL"

_engine: Engine | None = None


class DatabaseConfigError(Exception):
    """Raised when database configuration is missing or invalid.

    Operations requiring the database should not proceed without valid
    configuration.
    """

    pass


def is_database_configured() -> bool:
    """Check if a database URL is configured via environment."""
    return bool(os.environ.get(PROCSTORE_DATABASE_URL_ENV))


def _normalize_url(url: str) -> str:
    """Rewrite legacy ``postgres://`` URLs to the SQLAlchemy dialect name."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def get_database_url() -> str:
    """Get the database URL from environment.

    Raises:
        DatabaseConfigError: If PROCSTORE_DATABASE_URL is not set.
    """
    url = os.environ.get(PROCSTORE_DATABASE_URL_ENV)
    if not url:
        raise DatabaseConfigError(
            f"Database URL not configured. Set {PROCSTORE_DATABASE_URL_ENV} environment variable."
        )
    return _normalize_url(url)


def get_engine() -> Engine:
    """Get or create the application database engine.

    Raises:
        DatabaseConfigError: If PROCSTORE_DATABASE_URL is not set.
    """
    global _engine

    if _engine is None:
        url = get_database_url()
        if url.startswith("sqlite"):
            _engine = create_engine(url, echo=False)
        else:
            _engine = create_engine(
                url,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
                echo=False,
            )
        logger.info("Created application database engine")

    return _engine


def reset_engine() -> None:
    """Dispose the global engine. Used by tests."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
