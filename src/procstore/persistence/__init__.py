"""Persistence for document metadata.

Provides database connectivity and the documents repository with an
in-memory fallback for development and testing.
"""

from procstore.persistence.db import (
    DatabaseConfigError,
    get_database_url,
    get_engine,
    is_database_configured,
    reset_engine,
)

__all__ = [
    "DatabaseConfigError",
    "get_database_url",
    "get_engine",
    "is_database_configured",
    "reset_engine",
]
