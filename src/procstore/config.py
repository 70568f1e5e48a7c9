"""Runtime configuration for the document storage service.

Settings are loaded once from the environment and passed explicitly to the
services that need them.

Environment Variables:
    PROCSTORE_UPLOAD_MAX_WEIGHT: Maximum declared file weight in bytes
        (default: 50 MiB).
    PROCSTORE_UPLOAD_EXTENSIONS: Comma-separated allow-list of file extensions.
    PROCSTORE_UPLOAD_FOLDER: Root directory for stored content
        (default: OS temp dir / procstore_files).
    PROCSTORE_UPLOAD_PATH: Public URL prefix; the document id is appended.
    PROCSTORE_HASH_ALGORITHM: hashlib algorithm used for content digests
        (default: md5).
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from procstore.storage.integrity import is_supported_algorithm

PROCSTORE_UPLOAD_MAX_WEIGHT_ENV = "PROCSTORE_UPLOAD_MAX_WEIGHT"
PROCSTORE_UPLOAD_EXTENSIONS_ENV = "PROCSTORE_UPLOAD_EXTENSIONS"
PROCSTORE_UPLOAD_FOLDER_ENV = "PROCSTORE_UPLOAD_FOLDER"
PROCSTORE_UPLOAD_PATH_ENV = "PROCSTORE_UPLOAD_PATH"
PROCSTORE_HASH_ALGORITHM_ENV = "PROCSTORE_HASH_ALGORITHM"

DEFAULT_MAX_WEIGHT = 50 * 1024 * 1024  # 50 MiB
DEFAULT_EXTENSIONS = frozenset(
    {
        "pdf",
        "doc",
        "docx",
        "xls",
        "xlsx",
        "odt",
        "ods",
        "rtf",
        "txt",
        "csv",
        "zip",
        "rar",
        "7z",
        "jpg",
        "jpeg",
        "png",
        "tif",
        "tiff",
        "xml",
        "p7s",
        "sig",
    }
)
DEFAULT_URL_PATH = "http://localhost:8080/storage/get/"
DEFAULT_HASH_ALGORITHM = "md5"


class ConfigError(Exception):
    """Raised when a configuration value is missing or malformed.

    Startup should fail instead of running with a half-valid configuration.
    """

    pass


@dataclass(frozen=True)
class StorageSettings:
    """Immutable settings for the document lifecycle engine.

    Attributes:
        max_weight: Largest weight (bytes) a registration may declare.
        extensions: Allowed file extensions, without the leading dot.
        folder: Root directory under which content is sharded.
        url_path: Public download URL prefix.
        hash_algorithm: hashlib algorithm name for content digests.
    """

    max_weight: int = DEFAULT_MAX_WEIGHT
    extensions: frozenset[str] = field(default=DEFAULT_EXTENSIONS)
    folder: Path = field(default_factory=lambda: Path(tempfile.gettempdir()) / "procstore_files")
    url_path: str = DEFAULT_URL_PATH
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM

    def __post_init__(self) -> None:
        if self.max_weight <= 0:
            raise ConfigError(f"max_weight must be positive, got {self.max_weight}")
        if not self.extensions:
            raise ConfigError("extensions allow-list must not be empty")
        if not is_supported_algorithm(self.hash_algorithm):
            raise ConfigError(
                f"Unsupported hash algorithm: {self.hash_algorithm}; "
                "expected a fixed-length hashlib algorithm"
            )

    def url_for(self, document_id: str) -> str:
        """Return the public download URL of a document."""
        return self.url_path + document_id

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a JSON-serializable dict."""
        return {
            "max_weight": self.max_weight,
            "extensions": sorted(self.extensions),
            "folder": str(self.folder),
            "url_path": self.url_path,
            "hash_algorithm": self.hash_algorithm,
        }


def _parse_extensions(raw: str) -> frozenset[str]:
    """Parse a comma-separated extension list, dropping leading dots."""
    extensions = {part.strip().lstrip(".") for part in raw.split(",")}
    extensions.discard("")
    return frozenset(extensions)


def load_settings_from_env() -> StorageSettings:
    """Build StorageSettings from environment variables.

    Returns:
        StorageSettings with defaults applied for unset variables.

    Raises:
        ConfigError: If a variable is set to an invalid value.
    """
    max_weight_raw = os.environ.get(PROCSTORE_UPLOAD_MAX_WEIGHT_ENV, "").strip()
    if max_weight_raw:
        try:
            max_weight = int(max_weight_raw)
        except ValueError as e:
            raise ConfigError(
                f"{PROCSTORE_UPLOAD_MAX_WEIGHT_ENV} must be an integer, got {max_weight_raw!r}"
            ) from e
    else:
        max_weight = DEFAULT_MAX_WEIGHT

    extensions_raw = os.environ.get(PROCSTORE_UPLOAD_EXTENSIONS_ENV, "").strip()
    extensions = _parse_extensions(extensions_raw) if extensions_raw else DEFAULT_EXTENSIONS

    folder_raw = os.environ.get(PROCSTORE_UPLOAD_FOLDER_ENV, "").strip()
    folder = Path(folder_raw) if folder_raw else Path(tempfile.gettempdir()) / "procstore_files"

    url_path = os.environ.get(PROCSTORE_UPLOAD_PATH_ENV, "").strip() or DEFAULT_URL_PATH
    hash_algorithm = (
        os.environ.get(PROCSTORE_HASH_ALGORITHM_ENV, "").strip().lower() or DEFAULT_HASH_ALGORITHM
    )

    return StorageSettings(
        max_weight=max_weight,
        extensions=extensions,
        folder=folder,
        url_path=url_path,
        hash_algorithm=hash_algorithm,
    )
