"""Orchestrator command endpoint.

POST /command accepts a command message from the business-process engine:

    {"id": ..., "command": ..., "context": {"startDate": ...}, "data": ..., "version": ...}

Supported commands:
- validateDocumentsBatch: every document in ``data.documents`` must exist.
- setPublishDateBatch: publish ``data.documents`` with ``context.startDate``.
- checkRegistration: every id in ``data.documentIds`` must exist (non-empty).

Failures are answered inside the body with status "error" (HTTP 400) or
"incident" (HTTP 500) and a list of {code, description, details}.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from procstore.api.dependencies import BatchProcessorDep
from procstore.api.errors import log_incident
from procstore.api.routes.storage import format_timestamp
from procstore.services.documents.batch import BatchWorkflowProcessor
from procstore.services.documents.errors import DocumentError, DocumentIncident

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Command"])

BAD_REQUEST = "BAD_REQUEST"


class CommandType(str, Enum):
    """Commands understood by the storage service."""

    VALIDATE_DOCUMENTS_BATCH = "validateDocumentsBatch"
    SET_PUBLISH_DATE_BATCH = "setPublishDateBatch"
    CHECK_REGISTRATION = "checkRegistration"


class CommandContext(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_date: datetime | None = None


class CommandMessage(BaseModel):
    """Command message sent by the orchestrator."""

    id: Annotated[str, Field(min_length=1)]
    command: str
    context: CommandContext = Field(default_factory=CommandContext)
    data: dict[str, Any] = Field(default_factory=dict)
    version: str


class DocumentReference(BaseModel):
    """One entry of a documents batch; unknown fields are passed through."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    date_published: str | None = None
    url: str | None = None


class DocumentsPayload(BaseModel):
    documents: list[DocumentReference] | None = None


class DocumentIdsPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_ids: list[str]


class CommandError(Exception):
    """Malformed command: unknown name, bad payload or missing context."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


def _parse(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
        raise CommandError("Invalid command data", {"fields": fields}) from e


def _validate_documents_batch(
    message: CommandMessage, processor: BatchWorkflowProcessor
) -> Any:
    payload: DocumentsPayload = _parse(DocumentsPayload, message.data)
    processor.validate_documents([document.id for document in payload.documents or []])
    return "ok"


def _set_publish_date_batch(message: CommandMessage, processor: BatchWorkflowProcessor) -> Any:
    if message.context.start_date is None:
        raise CommandError("context.startDate is required", {"command": message.command})

    payload: DocumentsPayload = _parse(DocumentsPayload, message.data)
    documents = payload.documents or []
    published = processor.publish_documents(
        [document.id for document in documents],
        message.context.start_date,
    )
    for document, result in zip(documents, published, strict=True):
        document.date_published = format_timestamp(result.date_published)
        document.url = result.url

    return {"documents": [document.model_dump(by_alias=True) for document in documents]}


def _check_registration(message: CommandMessage, processor: BatchWorkflowProcessor) -> Any:
    payload: DocumentIdsPayload = _parse(DocumentIdsPayload, message.data)
    processor.check_registration(payload.document_ids)
    return "ok"


_HANDLERS = {
    CommandType.VALIDATE_DOCUMENTS_BATCH: _validate_documents_batch,
    CommandType.SET_PUBLISH_DATE_BATCH: _set_publish_date_batch,
    CommandType.CHECK_REGISTRATION: _check_registration,
}


def _error_body(
    message: CommandMessage,
    status: str,
    code: str,
    description: str,
    details: dict[str, Any],
) -> dict[str, Any]:
    return {
        "id": message.id,
        "version": message.version,
        "status": status,
        "errors": [{"code": code, "description": description, "details": details}],
    }


@router.post("/command")
def run_command(
    message: CommandMessage,
    request: Request,
    processor: BatchProcessorDep,
) -> JSONResponse:
    """Dispatch an orchestrator command and wrap its result or failure."""
    logger.info("Command received: id=%s command=%s", message.id, message.command)

    try:
        handler = _HANDLERS[CommandType(message.command)]
    except ValueError:
        logger.warning("Unknown command: id=%s command=%s", message.id, message.command)
        return JSONResponse(
            status_code=400,
            content=_error_body(
                message,
                "error",
                BAD_REQUEST,
                f"Unknown command: {message.command}",
                {"command": message.command},
            ),
        )

    try:
        data = handler(message, processor)
    except CommandError as e:
        logger.warning("Invalid command: id=%s error=%s", message.id, e.message)
        return JSONResponse(
            status_code=400,
            content=_error_body(message, "error", BAD_REQUEST, e.message, e.details),
        )
    except DocumentIncident as e:
        log_incident(getattr(request.state, "request_id", None), e)
        return JSONResponse(
            status_code=500,
            content=_error_body(message, "incident", e.code.value, e.message, e.details),
        )
    except DocumentError as e:
        logger.info(
            "Command rejected: id=%s command=%s code=%s",
            message.id,
            message.command,
            e.code.value,
        )
        return JSONResponse(
            status_code=400,
            content=_error_body(message, "error", e.code.value, e.message, e.details),
        )

    return JSONResponse(
        status_code=200,
        content={"id": message.id, "version": message.version, "data": data},
    )
