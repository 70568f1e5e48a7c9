"""Document Lifecycle Service: registration, upload, download and publication.

Owns the document state machine:

    REGISTERED --upload--> STORED_CLOSED --publish--> PUBLISHED

and enforces every transition precondition. Metadata goes through a
DocumentRepository, bytes through a ContentStore; configuration is an
injected StorageSettings.

Upload integrity:
- The incoming stream is read exactly once. Bytes are written to a temporary
  file while the digest is computed, so nothing is buffered in memory.
- The temporary file is moved into place only after the digest matches the
  registered hash; on any failure it is discarded and the record is untouched.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import BinaryIO

from procstore.config import StorageSettings
from procstore.models.document import DocumentRecord, DocumentState
from procstore.persistence.repositories.documents import DocumentRepository
from procstore.services.documents.errors import (
    ContentReadIncident,
    ContentWriteIncident,
    DocumentClosedError,
    DocumentNotFoundError,
    DocumentsNotFoundError,
    EmptyFileError,
    InvalidExtensionError,
    InvalidFileIdError,
    InvalidHashError,
    InvalidIdError,
    InvalidNameError,
    InvalidSizeError,
    NoFileOnServerError,
)
from procstore.storage.content_store import ContentStore
from procstore.storage.errors import (
    ContentReadError,
    ContentStorageError,
    ContentTooLargeError,
)
from procstore.storage.integrity import normalize_digest, verify_digest

logger = logging.getLogger(__name__)

UUID_PREFIX_LENGTH = 36

_UUID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")


class MillisecondSuffix:
    """Strictly increasing UTC epoch-millisecond values.

    Two calls within the same millisecond, or after the wall clock steps
    backwards, still return distinct increasing values.
    """

    def __init__(self, now: Callable[[], datetime] | None = None) -> None:
        self._now = now or (lambda: datetime.now(UTC))
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            millis = int(self._now().timestamp() * 1000)
            if millis <= self._last:
                millis = self._last + 1
            self._last = millis
            return millis


_default_suffix = MillisecondSuffix()


def file_extension(file_name: str) -> str:
    """Return the text after the last dot of the base name, or "".

    Example:
        >>> file_extension("tender.final.pdf")
        'pdf'
        >>> file_extension("README")
        ''
    """
    base_name = file_name.replace("\\", "/").rsplit("/", 1)[-1]
    _, dot, extension = base_name.rpartition(".")
    return extension if dot else ""


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True)
class PublishResult:
    """Outcome of a publish call.

    Attributes:
        published_at: Effective publication date (the first one on repeats).
        url: Public download URL.
    """

    published_at: datetime
    url: str


class DocumentLifecycleService:
    """Lifecycle engine for registered documents.

    Stateless apart from its collaborators; one instance per request is fine.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        content_store: ContentStore,
        settings: StorageSettings,
        *,
        clock: Callable[[], datetime] | None = None,
        id_suffix: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            repository: Document metadata store.
            content_store: Backend for document bytes.
            settings: Size, extension and URL configuration.
            clock: Source of "now" for registration timestamps.
            id_suffix: Source of the uniqueness suffix appended to ids.
        """
        self._repository = repository
        self._content = content_store
        self._settings = settings
        self._clock = clock or (lambda: datetime.now(UTC))
        self._id_suffix = id_suffix or _default_suffix

    @property
    def settings(self) -> StorageSettings:
        return self._settings

    def url_for(self, document_id: str) -> str:
        return self._settings.url_for(document_id)

    def register(
        self,
        file_name: str,
        declared_hash: str,
        declared_weight: int,
        id_prefix: str | None = None,
    ) -> DocumentRecord:
        """Reserve an id for a document that will be uploaded later.

        Args:
            file_name: Original file name; the upload must carry the same name.
            declared_hash: Expected content digest (hex, any case).
            declared_weight: Expected maximum size in bytes.
            id_prefix: Optional caller-chosen UUID used as the id prefix.

        Returns:
            The persisted REGISTERED record.

        Raises:
            InvalidSizeError: Weight is not positive or exceeds the maximum.
            InvalidExtensionError: Extension is not in the allow-list.
            InvalidFileIdError: ``id_prefix`` is not a lowercase UUID.
        """
        if declared_weight <= 0 or declared_weight > self._settings.max_weight:
            raise InvalidSizeError(declared_weight, self._settings.max_weight)

        if file_extension(file_name) not in self._settings.extensions:
            raise InvalidExtensionError(file_name, self._settings.extensions)

        record = DocumentRecord(
            id=self._generate_id(id_prefix),
            file_name=file_name,
            expected_hash=normalize_digest(declared_hash),
            expected_weight=declared_weight,
            created_at=self._clock(),
        )
        self._repository.save(record)

        logger.info(
            "Registered document: id=%s file_name=%s weight=%d",
            record.id,
            record.file_name,
            record.expected_weight,
        )
        return record

    def _generate_id(self, id_prefix: str | None) -> str:
        if id_prefix is None:
            prefix = str(uuid.uuid4())
        else:
            prefix = id_prefix[:UUID_PREFIX_LENGTH]
            if not _UUID_PATTERN.fullmatch(prefix):
                raise InvalidFileIdError(id_prefix)
        return f"{prefix}-{self._id_suffix()}"

    def upload(
        self,
        document_id: str,
        stream: BinaryIO,
        declared_name: str | None,
        declared_size: int | None,
    ) -> DocumentRecord:
        """Verify and store the content of a registered document.

        Args:
            document_id: Id returned by registration.
            stream: Readable binary stream with the file content.
            declared_name: File name reported by the transport.
            declared_size: Size reported by the transport, if known.

        Returns:
            The updated record with ``content_path`` set.

        Raises:
            DocumentNotFoundError: No record for ``document_id``.
            InvalidNameError: Name differs from the registered one.
            InvalidSizeError: Content is larger than the registered weight.
            InvalidHashError: Digest differs from the registered hash.
            EmptyFileError: Stream yielded no bytes.
            ContentReadIncident: Stream failed while being read.
            ContentWriteIncident: Content could not be written to disk.
        """
        record = self._require(document_id)

        if declared_name != record.file_name:
            raise InvalidNameError(declared_name, record.file_name)

        if declared_size is not None and declared_size > record.expected_weight:
            raise InvalidSizeError(declared_size, record.expected_weight)

        try:
            staged = self._content.stage(record.id, stream, max_bytes=record.expected_weight)
        except ContentTooLargeError as e:
            raise InvalidSizeError(None, record.expected_weight) from e
        except ContentReadError as e:
            logger.error("Upload stream unreadable: id=%s error=%s", record.id, e)
            raise ContentReadIncident(record.id, cause=e) from e
        except ContentStorageError as e:
            logger.error("Failed to stage upload: id=%s error=%s", record.id, e)
            raise ContentWriteIncident(record.id, cause=e) from e

        try:
            if not verify_digest(staged.digest, record.expected_hash):
                raise InvalidHashError(staged.digest, record.expected_hash)
            if staged.is_empty:
                raise EmptyFileError(record.file_name)
            try:
                content_path = self._content.commit(record.id, staged)
            except ContentStorageError as e:
                logger.error("Failed to store upload: id=%s error=%s", record.id, e)
                raise ContentWriteIncident(record.id, cause=e) from e
        except BaseException:
            self._content.discard(record.id, staged)
            raise

        record.content_path = str(content_path)
        self._repository.save(record)

        logger.info(
            "Uploaded document: id=%s size=%d digest=%s",
            record.id,
            staged.size_bytes,
            staged.digest,
        )
        return record

    def get_for_download(self, document_id: str) -> DocumentRecord:
        """Return a record whose content may be served to the public.

        Raises:
            DocumentNotFoundError: No record for ``document_id``.
            DocumentClosedError: Document is not published.
            NoFileOnServerError: Published but no content stored (incident).
        """
        record = self._require(document_id)

        if not record.is_published:
            raise DocumentClosedError(document_id)

        if record.state is DocumentState.INCONSISTENT:
            logger.error("Published document has no content: id=%s", document_id)
            raise NoFileOnServerError(document_id)

        return record

    def open_content(self, record: DocumentRecord) -> BinaryIO:
        """Open the stored content of a downloadable record.

        Raises:
            NoFileOnServerError: Record has no content path.
            ContentReadIncident: Stored content cannot be opened.
        """
        if record.content_path is None:
            raise NoFileOnServerError(record.id)
        try:
            return self._content.open_stream(record.id, record.content_path)
        except ContentStorageError as e:
            logger.error("Stored content unreadable: id=%s error=%s", record.id, e)
            raise ContentReadIncident(record.id, cause=e) from e

    def validate_existence(self, document_ids: Iterable[str]) -> None:
        """Check that every id refers to a registered document.

        An empty collection is valid.

        Raises:
            InvalidIdError: An id is empty or blank.
            DocumentsNotFoundError: Lists exactly the ids with no record.
        """
        requested = list(document_ids)
        if not requested:
            return

        if any(not document_id.strip() for document_id in requested):
            raise InvalidIdError()

        requested_ids = set(requested)
        found_ids = {record.id for record in self._repository.get_all_by_ids(requested_ids)}
        missing = requested_ids - found_ids
        if missing:
            raise DocumentsNotFoundError(missing)

    def publish(self, document_id: str, published_at: datetime) -> PublishResult:
        """Make a document externally visible. Idempotent.

        Content presence is not checked here; a document published before its
        upload fails at download time instead.

        Returns:
            PublishResult carrying the first publication date ever recorded.

        Raises:
            DocumentNotFoundError: No record for ``document_id``.
        """
        record = self._require(document_id)

        if record.published_at is not None:
            logger.debug(
                "Document already published: id=%s published_at=%s",
                document_id,
                record.published_at.isoformat(),
            )
            return PublishResult(published_at=record.published_at, url=self.url_for(record.id))

        record.published_at = _as_utc(published_at)
        self._repository.save(record)

        logger.info(
            "Published document: id=%s published_at=%s",
            document_id,
            record.published_at.isoformat(),
        )
        return PublishResult(published_at=record.published_at, url=self.url_for(record.id))

    def _require(self, document_id: str) -> DocumentRecord:
        record = self._repository.get_by_id(document_id)
        if record is None:
            raise DocumentNotFoundError(document_id)
        return record
