"""Documents table.

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the documents table holding one metadata row per registered
document, plus an index on the publication flag.
"""

from alembic import op

from procstore.persistence.schema import DOCUMENTS_PUBLISHED_INDEX_DDL, DOCUMENTS_TABLE_DDL

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Apply migration: create documents table and index."""
    op.execute(DOCUMENTS_TABLE_DDL)
    op.execute(DOCUMENTS_PUBLISHED_INDEX_DDL)


def downgrade() -> None:
    """Revert migration: drop documents table."""
    op.execute("DROP INDEX IF EXISTS ix_documents_is_published")
    op.execute("DROP TABLE IF EXISTS documents")
