"""Content storage data models."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class StagedContent:
    """Bytes written to a temporary file, waiting to be committed or discarded.

    Attributes:
        document_id: Document the content belongs to.
        temp_path: Temporary file holding the bytes.
        target_path: Final sharded location of the content.
        digest: Uppercase hex digest of the bytes.
        size_bytes: Number of bytes read from the source stream.
    """

    document_id: str
    temp_path: Path
    target_path: Path
    digest: str
    size_bytes: int

    @property
    def is_empty(self) -> bool:
        """True if the source stream yielded no bytes."""
        return self.size_bytes == 0
