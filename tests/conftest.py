"""Pytest configuration and fixtures for procstore tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.pool import StaticPool

from procstore.config import StorageSettings
from procstore.persistence.repositories.documents import (
    InMemoryDocumentsRepository,
    clear_in_memory_store,
)
from procstore.persistence.schema import DOCUMENTS_TABLE_DDL
from procstore.services.documents.service import DocumentLifecycleService
from procstore.storage.filesystem_store import FilesystemContentStore

PROCSTORE_ENV_VARS = (
    "PROCSTORE_UPLOAD_MAX_WEIGHT",
    "PROCSTORE_UPLOAD_EXTENSIONS",
    "PROCSTORE_UPLOAD_FOLDER",
    "PROCSTORE_UPLOAD_PATH",
    "PROCSTORE_HASH_ALGORITHM",
    "PROCSTORE_DATABASE_URL",
    "PROCSTORE_OTEL_ENABLED",
    "PROCSTORE_REQUIRE_OTEL",
    "PROCSTORE_OTEL_SERVICE_NAME",
    "PROCSTORE_OTEL_EXPORTER",
    "PROCSTORE_OTEL_TEST_CAPTURE",
)

TEST_URL_PATH = "http://storage.test/storage/get/"
FIXED_NOW = datetime(2024, 3, 1, 9, 30, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove PROCSTORE_* variables so tests never see the host configuration."""
    for name in PROCSTORE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def clear_documents_store() -> Iterator[None]:
    """Start and finish every test with an empty in-memory repository."""
    clear_in_memory_store()
    yield
    clear_in_memory_store()


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    return tmp_path / "files"


@pytest.fixture
def settings(storage_root: Path) -> StorageSettings:
    """Settings with a small weight limit and a per-test storage root."""
    return StorageSettings(
        max_weight=1024,
        extensions=frozenset({"pdf", "docx", "txt"}),
        folder=storage_root,
        url_path=TEST_URL_PATH,
    )


@pytest.fixture
def content_store(settings: StorageSettings) -> FilesystemContentStore:
    return FilesystemContentStore(settings.folder, algorithm=settings.hash_algorithm)


@pytest.fixture
def service(
    settings: StorageSettings, content_store: FilesystemContentStore
) -> DocumentLifecycleService:
    """Lifecycle service over the in-memory repository and a temp directory."""
    return DocumentLifecycleService(
        InMemoryDocumentsRepository(),
        content_store,
        settings,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    """In-memory SQLite engine with the documents table.

    StaticPool keeps one shared connection so every checkout sees the same
    database, including from the TestClient worker threads.
    """
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        conn.execute(text(DOCUMENTS_TABLE_DDL))
    yield engine
    engine.dispose()
