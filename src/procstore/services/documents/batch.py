"""Batch workflow for the orchestration process.

Applies existence validation and publication to lists of document references
sent by the external orchestrator.

- Validation is all-or-nothing: one missing id fails the whole batch and the
  error lists every missing id.
- Publication is applied entry by entry in order. The first failure aborts
  the batch; entries published before it stay published, and re-sending the
  batch is safe because publish is idempotent.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from procstore.services.documents.errors import EmptyArrayError
from procstore.services.documents.service import DocumentLifecycleService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishedDocument:
    """Publication outcome of one batch entry.

    Attributes:
        id: Document id.
        date_published: Effective publication date.
        url: Public download URL.
    """

    id: str
    date_published: datetime
    url: str


class BatchWorkflowProcessor:
    """Runs lifecycle operations over lists of document ids."""

    def __init__(self, service: DocumentLifecycleService) -> None:
        self._service = service

    def validate_documents(self, document_ids: Sequence[str]) -> None:
        """Check that every referenced document is registered.

        An empty batch is valid.

        Raises:
            InvalidIdError: An id is empty or blank.
            DocumentsNotFoundError: Lists the ids with no record.
        """
        self._service.validate_existence(document_ids)
        logger.info("Validated document batch: count=%d", len(document_ids))

    def check_registration(self, document_ids: Sequence[str]) -> None:
        """Like validate_documents, but an empty batch is a data error.

        Raises:
            EmptyArrayError: ``document_ids`` is empty.
            InvalidIdError: An id is empty or blank.
            DocumentsNotFoundError: Lists the ids with no record.
        """
        if not document_ids:
            raise EmptyArrayError("documentIds")
        self.validate_documents(document_ids)

    def publish_documents(
        self,
        document_ids: Sequence[str],
        published_at: datetime,
    ) -> list[PublishedDocument]:
        """Publish every referenced document.

        Args:
            document_ids: Ids to publish, in order.
            published_at: Publication date for documents not yet published.

        Returns:
            One PublishedDocument per id, in input order.

        Raises:
            DocumentNotFoundError: For the first id with no record.
        """
        published: list[PublishedDocument] = []
        for document_id in document_ids:
            result = self._service.publish(document_id, published_at)
            published.append(
                PublishedDocument(
                    id=document_id,
                    date_published=result.published_at,
                    url=result.url,
                )
            )

        logger.info("Published document batch: count=%d", len(published))
        return published
