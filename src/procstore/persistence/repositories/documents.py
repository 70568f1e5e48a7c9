"""Documents repository for SQL persistence and in-memory fallback.

Stores one row per DocumentRecord keyed by document id. ``save`` is a full
upsert: the row is overwritten with the record's current field values.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import Boolean, DateTime, bindparam, text

from procstore.models.document import DocumentRecord

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, file_name, expected_hash, expected_weight, content_path, "
    "is_published, published_at, created_at"
)


@runtime_checkable
class DocumentRepository(Protocol):
    """Structural interface for document metadata stores.

    Both DocumentsRepository and InMemoryDocumentsRepository satisfy this
    protocol.
    """

    def get_by_id(self, document_id: str) -> DocumentRecord | None: ...

    def get_all_by_ids(self, document_ids: Iterable[str]) -> list[DocumentRecord]: ...

    def save(self, record: DocumentRecord) -> DocumentRecord: ...


def _as_utc(value: Any) -> datetime | None:
    """Coerce a stored timestamp to an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class DocumentsRepository:
    """SQL repository for document records.

    The connection must be inside a transaction; committing is the caller's
    responsibility.
    """

    _SELECT_BY_ID = text(
        f"SELECT {_COLUMNS} FROM documents WHERE id = :id"
    ).columns(published_at=DateTime(timezone=True), created_at=DateTime(timezone=True))

    _SELECT_BY_IDS = (
        text(f"SELECT {_COLUMNS} FROM documents WHERE id IN :ids")
        .bindparams(bindparam("ids", expanding=True))
        .columns(published_at=DateTime(timezone=True), created_at=DateTime(timezone=True))
    )

    _UPSERT = text(
        f"""
        INSERT INTO documents ({_COLUMNS})
        VALUES (
            :id, :file_name, :expected_hash, :expected_weight, :content_path,
            :is_published, :published_at, :created_at
        )
        ON CONFLICT (id) DO UPDATE SET
            file_name = excluded.file_name,
            expected_hash = excluded.expected_hash,
            expected_weight = excluded.expected_weight,
            content_path = excluded.content_path,
            is_published = excluded.is_published,
            published_at = excluded.published_at,
            created_at = excluded.created_at
        """
    ).bindparams(
        bindparam("is_published", type_=Boolean()),
        bindparam("published_at", type_=DateTime(timezone=True)),
        bindparam("created_at", type_=DateTime(timezone=True)),
    )

    def __init__(self, conn: Connection) -> None:
        """Initialize repository with a connection.

        Args:
            conn: SQLAlchemy connection (must be in a transaction).
        """
        self._conn = conn

    def get_by_id(self, document_id: str) -> DocumentRecord | None:
        """Get a document record by id, or None if absent."""
        row = self._conn.execute(self._SELECT_BY_ID, {"id": document_id}).fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    def get_all_by_ids(self, document_ids: Iterable[str]) -> list[DocumentRecord]:
        """Get every record whose id is in ``document_ids``.

        Missing ids are silently skipped; callers compare the result against
        the requested set.
        """
        ids = sorted(set(document_ids))
        if not ids:
            return []
        rows = self._conn.execute(self._SELECT_BY_IDS, {"ids": ids}).fetchall()
        return [self._row_to_record(row) for row in rows]

    def save(self, record: DocumentRecord) -> DocumentRecord:
        """Insert or fully overwrite a record."""
        self._conn.execute(
            self._UPSERT,
            {
                "id": record.id,
                "file_name": record.file_name,
                "expected_hash": record.expected_hash,
                "expected_weight": record.expected_weight,
                "content_path": record.content_path,
                "is_published": record.is_published,
                "published_at": _as_utc(record.published_at),
                "created_at": _as_utc(record.created_at),
            },
        )
        logger.debug("Saved document record: id=%s", record.id)
        return record

    def _row_to_record(self, row: Any) -> DocumentRecord:
        """Convert database row to DocumentRecord."""
        return DocumentRecord(
            id=str(row.id),
            file_name=row.file_name,
            expected_hash=row.expected_hash,
            expected_weight=int(row.expected_weight),
            content_path=row.content_path,
            published_at=_as_utc(row.published_at),
            created_at=_as_utc(row.created_at),
        )


_in_memory_store: dict[str, DocumentRecord] = {}


class InMemoryDocumentsRepository:
    """In-memory fallback repository for when no database is configured.

    Used for development/testing without database dependency. Records are
    copied on the way in and out so callers never share mutable state with
    the store.
    """

    def get_by_id(self, document_id: str) -> DocumentRecord | None:
        record = _in_memory_store.get(document_id)
        return record.model_copy(deep=True) if record is not None else None

    def get_all_by_ids(self, document_ids: Iterable[str]) -> list[DocumentRecord]:
        return [
            _in_memory_store[document_id].model_copy(deep=True)
            for document_id in sorted(set(document_ids))
            if document_id in _in_memory_store
        ]

    def save(self, record: DocumentRecord) -> DocumentRecord:
        _in_memory_store[record.id] = record.model_copy(deep=True)
        return record


def clear_in_memory_store() -> None:
    """Clear the in-memory store. For testing only."""
    _in_memory_store.clear()


def get_documents_repository(
    conn: Connection | None,
) -> DocumentsRepository | InMemoryDocumentsRepository:
    """Factory to get appropriate documents repository.

    Returns the SQL repository when a connection is available, otherwise the
    in-memory fallback.

    Args:
        conn: SQLAlchemy connection (None for in-memory).
    """
    if conn is not None:
        return DocumentsRepository(conn)
    return InMemoryDocumentsRepository()
