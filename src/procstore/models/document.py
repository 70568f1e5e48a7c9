"""Document record model: metadata tracking one stored file.

A record is created by registration, gains a content path on upload and a
publication date on publish. Records are never deleted.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class DocumentState(str, Enum):
    """Lifecycle state derived from (has_content, is_published).

    State flow:
    REGISTERED → STORED_CLOSED → PUBLISHED

    INCONSISTENT (published without content) arises only when a document is
    published before its upload; a download in this state is an incident.
    """

    REGISTERED = "REGISTERED"
    STORED_CLOSED = "STORED_CLOSED"
    PUBLISHED = "PUBLISHED"
    INCONSISTENT = "INCONSISTENT"


def derive_state(has_content: bool, is_published: bool) -> DocumentState:
    """Map the two persisted flags to a lifecycle state.

    Example:
        >>> derive_state(True, False)
        <DocumentState.STORED_CLOSED: 'STORED_CLOSED'>
        >>> derive_state(False, True)
        <DocumentState.INCONSISTENT: 'INCONSISTENT'>
    """
    if is_published:
        return DocumentState.PUBLISHED if has_content else DocumentState.INCONSISTENT
    return DocumentState.STORED_CLOSED if has_content else DocumentState.REGISTERED


class DocumentRecord(BaseModel):
    """Metadata for a registered document.

    Attributes:
        id: Unique document id assigned at registration.
        file_name: Declared original file name; uploads must match it exactly.
        expected_hash: Declared content digest, uppercase hex.
        expected_weight: Declared maximum size in bytes.
        content_path: Location of stored content, None until uploaded.
        published_at: First publication timestamp, write-once. A record is
            published exactly when this is set.
        created_at: Registration timestamp.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    id: Annotated[str, Field(min_length=1, description="Unique document identifier")]
    file_name: Annotated[str, Field(description="Declared original file name")]
    expected_hash: Annotated[str, Field(description="Declared digest, uppercase hex")]
    expected_weight: Annotated[int, Field(gt=0, description="Declared maximum size in bytes")]
    content_path: Annotated[
        str | None,
        Field(default=None, description="Stored content location"),
    ] = None
    published_at: Annotated[
        datetime | None,
        Field(default=None, description="First publication timestamp"),
    ] = None
    created_at: Annotated[datetime, Field(description="Registration timestamp")]

    @property
    def has_content(self) -> bool:
        return self.content_path is not None

    @property
    def is_published(self) -> bool:
        return self.published_at is not None

    @property
    def state(self) -> DocumentState:
        return derive_state(self.has_content, self.is_published)
