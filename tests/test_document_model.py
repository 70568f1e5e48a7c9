"""Tests for the document record model and lifecycle state derivation."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from procstore.models.document import DocumentRecord, DocumentState, derive_state

CREATED_AT = datetime(2024, 3, 1, 9, 30, tzinfo=UTC)


def _record(**overrides: object) -> DocumentRecord:
    fields: dict[str, object] = {
        "id": "3f2c9a1e-0000-4000-8000-000000000001-1709285400000",
        "file_name": "tender.pdf",
        "expected_hash": "D41D8CD98F00B204E9800998ECF8427E",
        "expected_weight": 100,
        "created_at": CREATED_AT,
    }
    fields.update(overrides)
    return DocumentRecord(**fields)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("has_content", "is_published", "expected"),
    [
        (False, False, DocumentState.REGISTERED),
        (True, False, DocumentState.STORED_CLOSED),
        (True, True, DocumentState.PUBLISHED),
        (False, True, DocumentState.INCONSISTENT),
    ],
)
def test_derive_state(has_content: bool, is_published: bool, expected: DocumentState) -> None:
    assert derive_state(has_content, is_published) is expected


def test_new_record_is_registered() -> None:
    record = _record()

    assert record.state is DocumentState.REGISTERED
    assert record.has_content is False
    assert record.is_published is False


def test_state_follows_fields() -> None:
    record = _record()

    record.content_path = "/data/3f/2c/doc"
    assert record.state is DocumentState.STORED_CLOSED

    record.published_at = CREATED_AT
    assert record.is_published is True
    assert record.state is DocumentState.PUBLISHED


def test_published_without_content_is_inconsistent() -> None:
    assert _record(published_at=CREATED_AT).state is DocumentState.INCONSISTENT


def test_weight_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        _record(expected_weight=0)


def test_unknown_fields_rejected() -> None:
    with pytest.raises(ValidationError):
        _record(owner="someone")


def test_assignment_is_validated() -> None:
    record = _record()

    with pytest.raises(ValidationError):
        record.expected_weight = -5
