"""Tests for the storage routes: registration, upload and download.

Runs against both the in-memory repository and a SQLite-backed one.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine

from procstore.api.main import create_app
from procstore.api.routes.storage import content_disposition, format_timestamp, media_type_for
from procstore.config import StorageSettings
from procstore.persistence.repositories.documents import DocumentsRepository

CONTENT = b"%PDF-1.7 tender documentation for lot 1"
PREFIX = "3f2c9a1e-5b7d-4c1a-9e2f-0a1b2c3d4e5f"
TIMESTAMP_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z")


def _md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


@pytest.fixture(params=["memory", "sql"])
def client(
    request: pytest.FixtureRequest, settings: StorageSettings, sqlite_engine: Engine
) -> Iterator[TestClient]:
    engine = sqlite_engine if request.param == "sql" else None
    with TestClient(create_app(settings=settings, engine=engine)) as test_client:
        yield test_client


def _register(
    client: TestClient, file_name: str = "tender.pdf", data: bytes = CONTENT, **extra: Any
) -> dict[str, Any]:
    body = {"fileName": file_name, "hash": _md5(data), "weight": len(data), **extra}
    response = client.post("/storage/registration", json=body)
    assert response.status_code == 201, response.text
    result: dict[str, Any] = response.json()
    return result


def _upload(
    client: TestClient, file_id: str, file_name: str = "tender.pdf", data: bytes = CONTENT
) -> Any:
    return client.post(
        f"/storage/upload/{file_id}",
        files={"file": (file_name, data, "application/octet-stream")},
    )


def _publish(client: TestClient, file_id: str) -> None:
    response = client.post(
        "/command",
        json={
            "id": "cmd-1",
            "command": "setPublishDateBatch",
            "context": {"startDate": "2024-03-05T10:00:00Z"},
            "data": {"documents": [{"id": file_id}]},
            "version": "1.0.0",
        },
    )
    assert response.status_code == 200, response.text


class TestRegistration:
    def test_returns_id_and_url(self, client: TestClient, settings: StorageSettings) -> None:
        body = _register(client)

        assert body["url"] == settings.url_path + body["id"]
        assert TIMESTAMP_PATTERN.fullmatch(body["dateModified"])
        assert body["datePublished"] is None

    def test_id_prefix(self, client: TestClient) -> None:
        body = _register(client, id=PREFIX)

        assert body["id"].startswith(PREFIX + "-")

    def test_invalid_prefix(self, client: TestClient) -> None:
        response = client.post(
            "/storage/registration",
            json={"fileName": "tender.pdf", "hash": _md5(CONTENT), "weight": 10, "id": "bad"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FILE_ID"

    def test_invalid_extension(self, client: TestClient) -> None:
        response = client.post(
            "/storage/registration",
            json={"fileName": "virus.exe", "hash": _md5(CONTENT), "weight": 10},
        )

        body = response.json()
        assert response.status_code == 400
        assert body["code"] == "INVALID_EXTENSION"
        assert body["details"]["allowed"] == ["docx", "pdf", "txt"]
        assert body["request_id"] == response.headers["X-Request-Id"]

    def test_weight_over_limit(self, client: TestClient) -> None:
        response = client.post(
            "/storage/registration",
            json={"fileName": "tender.pdf", "hash": _md5(CONTENT), "weight": 4096},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SIZE"
        assert response.json()["details"]["limit"] == 1024

    def test_missing_field_is_request_validation_error(self, client: TestClient) -> None:
        response = client.post("/storage/registration", json={"fileName": "tender.pdf"})

        body = response.json()
        assert response.status_code == 422
        assert body["code"] == "REQUEST_VALIDATION_FAILED"
        assert {error["field"] for error in body["details"]["errors"]} == {"hash", "weight"}


class TestUpload:
    def test_upload_returns_document(self, client: TestClient) -> None:
        registered = _register(client)

        response = _upload(client, registered["id"])

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["id"] == registered["id"]
        assert body["url"] == registered["url"]
        assert body["datePublished"] is None

    def test_content_lands_at_sharded_path(
        self, client: TestClient, storage_root: Path
    ) -> None:
        file_id = _register(client)["id"]

        _upload(client, file_id)

        target = storage_root / file_id[0:2] / file_id[2:4] / file_id
        assert target.read_bytes() == CONTENT

    def test_unknown_file(self, client: TestClient) -> None:
        response = _upload(client, "unknown-file-id")

        assert response.status_code == 404
        assert response.json()["code"] == "FILE_NOT_FOUND"

    def test_wrong_name(self, client: TestClient) -> None:
        file_id = _register(client)["id"]

        response = _upload(client, file_id, file_name="other.pdf")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_NAME"

    def test_hash_mismatch(self, client: TestClient, storage_root: Path) -> None:
        file_id = _register(client)["id"]

        response = _upload(client, file_id, data=CONTENT.upper())

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_HASH"
        assert not any(p.is_file() for p in storage_root.rglob("*"))

    def test_non_ascii_registered_hash_is_rejected(
        self, client: TestClient, storage_root: Path
    ) -> None:
        file_id = _register(client, hash="ÄBCD")["id"]

        response = _upload(client, file_id)

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_HASH"
        assert not any(p.is_file() for p in storage_root.rglob("*"))

    def test_oversized_upload(self, client: TestClient) -> None:
        file_id = _register(client)["id"]

        response = _upload(client, file_id, data=CONTENT + b"!")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SIZE"

    def test_missing_file_part(self, client: TestClient) -> None:
        file_id = _register(client)["id"]

        response = client.post(f"/storage/upload/{file_id}", data={"other": "x"})

        assert response.status_code == 422


class TestDownload:
    def test_unknown_file(self, client: TestClient) -> None:
        response = client.get("/storage/get/unknown-file-id")

        assert response.status_code == 404
        assert response.json()["code"] == "FILE_NOT_FOUND"

    def test_unpublished_file_is_closed(self, client: TestClient) -> None:
        file_id = _register(client)["id"]
        _upload(client, file_id)

        response = client.get(f"/storage/get/{file_id}")

        assert response.status_code == 403
        assert response.json()["code"] == "FILE_IS_CLOSED"

    def test_published_file_streams_content(self, client: TestClient) -> None:
        file_id = _register(client)["id"]
        _upload(client, file_id)
        _publish(client, file_id)

        response = client.get(f"/storage/get/{file_id}")

        assert response.status_code == 200
        assert response.content == CONTENT
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == 'attachment; filename="tender.pdf"'

    def test_name_with_space_is_percent_encoded(self, client: TestClient) -> None:
        file_id = _register(client, file_name="tender notice.txt")["id"]
        _upload(client, file_id, file_name="tender notice.txt")
        _publish(client, file_id)

        response = client.get(f"/storage/get/{file_id}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["content-disposition"] == (
            "attachment; filename=\"tender%20notice.txt\"; filename*=utf-8''tender%20notice.txt"
        )

    def test_published_before_upload_is_internal_error(self, client: TestClient) -> None:
        file_id = _register(client)["id"]
        _publish(client, file_id)

        response = client.get(f"/storage/get/{file_id}")

        body = response.json()
        assert response.status_code == 500
        assert body["code"] == "INTERNAL_ERROR"
        assert body["message"] == "An internal error occurred"
        assert body["details"] is None


def test_sql_backend_persists_records(settings: StorageSettings, sqlite_engine: Engine) -> None:
    with TestClient(create_app(settings=settings, engine=sqlite_engine)) as client:
        file_id = _register(client)["id"]
        _upload(client, file_id)

    with sqlite_engine.connect() as conn:
        record = DocumentsRepository(conn).get_by_id(file_id)

    assert record is not None
    assert record.expected_hash == _md5(CONTENT).upper()
    assert record.content_path is not None


class TestHelpers:
    def test_content_disposition_non_ascii(self) -> None:
        header = content_disposition("заявка.pdf")

        encoded = "%D0%B7%D0%B0%D1%8F%D0%B2%D0%BA%D0%B0.pdf"
        assert header == f"attachment; filename=\"{encoded}\"; filename*=utf-8''{encoded}"

    def test_content_disposition_ascii(self) -> None:
        assert content_disposition("lot-1_final.pdf") == 'attachment; filename="lot-1_final.pdf"'

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("tender.pdf", "application/pdf"),
            ("notes.txt", "text/plain"),
            ("archive.unknownext", "application/octet-stream"),
            ("README", "application/octet-stream"),
        ],
    )
    def test_media_type_for(self, name: str, expected: str) -> None:
        assert media_type_for(name) == expected

    def test_format_timestamp_drops_subseconds(self) -> None:
        value = datetime(2024, 3, 1, 14, 30, 5, 123456, tzinfo=timezone(timedelta(hours=2)))

        assert format_timestamp(value) == "2024-03-01T12:30:05Z"
        assert format_timestamp(datetime(2024, 3, 1, 12, 0)) == "2024-03-01T12:00:00Z"
        assert format_timestamp(None) is None
