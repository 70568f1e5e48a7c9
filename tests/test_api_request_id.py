"""Tests for request id resolution and the request log line."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from procstore.api.main import create_app
from procstore.api.middleware.request_id import (
    MAX_REQUEST_ID_LENGTH,
    REQUEST_ID_HEADER,
    resolve_request_id,
)
from procstore.config import StorageSettings


def _is_uuid4(value: str) -> bool:
    try:
        return uuid.UUID(value).version == 4
    except ValueError:
        return False


@pytest.fixture
def client(settings: StorageSettings) -> TestClient:
    return TestClient(create_app(settings=settings))


class TestResolveRequestId:
    @pytest.mark.parametrize("value", ["req-12345", "bpe:cmd.42", "A_b-9"])
    def test_caller_id_kept(self, value: str) -> None:
        assert resolve_request_id(value) == value

    def test_surrounding_whitespace_stripped(self) -> None:
        assert resolve_request_id("  req-1  ") == "req-1"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_id_generated(self, value: str | None) -> None:
        assert _is_uuid4(resolve_request_id(value))

    @pytest.mark.parametrize(
        "value",
        [
            "x" * (MAX_REQUEST_ID_LENGTH + 1),
            "two words",
            "req\r\nX-Injected: 1",
            "файл-1",
        ],
        ids=["too-long", "space", "crlf", "non-ascii"],
    )
    def test_unsafe_id_replaced(self, value: str) -> None:
        assert _is_uuid4(resolve_request_id(value))

    def test_longest_allowed_id_kept(self) -> None:
        value = "x" * MAX_REQUEST_ID_LENGTH

        assert resolve_request_id(value) == value


def test_unsafe_header_replaced_in_response(client: TestClient) -> None:
    response = client.get("/health", headers={REQUEST_ID_HEADER: "two words"})

    assert _is_uuid4(response.headers[REQUEST_ID_HEADER])


def test_error_envelope_uses_resolved_id(client: TestClient) -> None:
    response = client.get("/storage/get/unknown-id", headers={REQUEST_ID_HEADER: "two words"})

    assert response.status_code == 404
    assert response.json()["request_id"] == response.headers[REQUEST_ID_HEADER]
    assert _is_uuid4(response.json()["request_id"])


def test_request_is_logged_with_id(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="procstore.api.middleware.request_id"):
        client.get("/storage/get/unknown-id", headers={REQUEST_ID_HEADER: "req-77"})

    [record] = [r for r in caplog.records if r.name == "procstore.api.middleware.request_id"]
    assert "method=GET" in record.getMessage()
    assert "path=/storage/get/unknown-id" in record.getMessage()
    assert "status=404" in record.getMessage()
    assert record.request_id == "req-77"  # type: ignore[attr-defined]
