"""DDL for the documents table.

Shared by the Alembic migration and by tests that build a throwaway SQLite
database. The statement is valid on both PostgreSQL and SQLite.
"""

DOCUMENTS_TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS documents (
        id TEXT PRIMARY KEY,
        file_name TEXT NOT NULL,
        expected_hash TEXT NOT NULL,
        expected_weight BIGINT NOT NULL,
        content_path TEXT,
        is_published BOOLEAN NOT NULL DEFAULT FALSE,
        published_at TIMESTAMP WITH TIME ZONE,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL
    )
"""

DOCUMENTS_PUBLISHED_INDEX_DDL = """
    CREATE INDEX IF NOT EXISTS ix_documents_is_published
    ON documents (is_published)
"""
