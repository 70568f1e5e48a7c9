"""Storage routes: document registration, upload and public download.

- POST /storage/registration (register a document and reserve its id)
- POST /storage/upload/{fileId} (upload content against a registration)
- GET /storage/get/{fileId} (download a published document)

Request and response bodies use camelCase field names.
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Annotated, BinaryIO
from urllib.parse import quote

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from procstore.api.dependencies import LifecycleServiceDep
from procstore.api.errors import ErrorResponse
from procstore.models.document import DocumentRecord
from procstore.storage.integrity import CHUNK_SIZE

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/storage",
    tags=["Storage"],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)

DEFAULT_MEDIA_TYPE = "application/octet-stream"


def format_timestamp(value: datetime | None) -> str | None:
    """Serialize a timestamp as ISO-8601 UTC with second precision.

    Example:
        >>> format_timestamp(datetime(2024, 3, 1, 12, 30, 5, 999, tzinfo=UTC))
        '2024-03-01T12:30:05Z'
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class RegistrationRequest(BaseModel):
    """Request body for POST /storage/registration."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    file_name: Annotated[str, Field(min_length=1)]
    hash: Annotated[str, Field(min_length=1)]
    weight: int
    id: str | None = None


class DocumentResponse(BaseModel):
    """Registration and upload response body."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    url: str
    date_modified: str | None = None
    date_published: str | None = None


def _document_response(record: DocumentRecord, url: str) -> DocumentResponse:
    return DocumentResponse(
        id=record.id,
        url=url,
        date_modified=format_timestamp(record.created_at),
        date_published=format_timestamp(record.published_at),
    )


def content_disposition(file_name: str) -> str:
    """Build an attachment Content-Disposition header value.

    Names that survive percent-encoding unchanged are sent as-is; others are
    sent percent-encoded, with an RFC 5987 ``filename*`` parameter.

    Example:
        >>> content_disposition("tender.pdf")
        'attachment; filename="tender.pdf"'
    """
    encoded = quote(file_name, safe="")
    if encoded == file_name:
        return f'attachment; filename="{file_name}"'
    return f"attachment; filename=\"{encoded}\"; filename*=utf-8''{encoded}"


def media_type_for(file_name: str) -> str:
    """Guess the MIME type from the file extension."""
    media_type, _ = mimetypes.guess_type(file_name, strict=False)
    return media_type or DEFAULT_MEDIA_TYPE


def _iter_stream(stream: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    with stream:
        while chunk := stream.read(chunk_size):
            yield chunk


@router.post("/registration", response_model=DocumentResponse, status_code=201)
def register_document(
    request_body: RegistrationRequest,
    service: LifecycleServiceDep,
) -> DocumentResponse:
    """Register a document and reserve its id.

    Returns:
        The new id, its download URL and the registration time.
    """
    logger.info("Document registration request: file_name=%s", request_body.file_name)
    record = service.register(
        file_name=request_body.file_name,
        declared_hash=request_body.hash,
        declared_weight=request_body.weight,
        id_prefix=request_body.id,
    )
    return _document_response(record, service.url_for(record.id))


@router.post("/upload/{file_id}", response_model=DocumentResponse, status_code=201)
def upload_document(
    file_id: str,
    file: Annotated[UploadFile, File()],
    service: LifecycleServiceDep,
) -> DocumentResponse:
    """Upload the content of a registered document.

    The multipart part's file name must equal the registered name and its
    digest the registered hash.
    """
    logger.info("Document upload request: file_id=%s", file_id)
    record = service.upload(
        file_id,
        file.file,
        declared_name=file.filename,
        declared_size=file.size,
    )
    return _document_response(record, service.url_for(record.id))


@router.get("/get/{file_id}", response_class=StreamingResponse)
def download_document(file_id: str, service: LifecycleServiceDep) -> StreamingResponse:
    """Stream the content of a published document as an attachment."""
    logger.info("Document download request: file_id=%s", file_id)
    record = service.get_for_download(file_id)
    stream = service.open_content(record)

    return StreamingResponse(
        _iter_stream(stream),
        media_type=media_type_for(record.file_name),
        headers={"Content-Disposition": content_disposition(record.file_name)},
    )
