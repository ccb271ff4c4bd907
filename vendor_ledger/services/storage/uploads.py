"""
Local Upload Storage

Stores contract files on the local filesystem under a generated,
storage-unique name: ``<uuid4>_<original filename>``.

Only the name is handed back to the ledger; the ledger never reads
file contents.
"""

from pathlib import Path
from typing import Optional
from uuid import uuid4

import structlog

from vendor_ledger.config import get_settings
from vendor_ledger.errors import StorageFailure, ValidationError
from vendor_ledger.services.storage.interface import BinaryStorageInterface


logger = structlog.get_logger(__name__)


class LocalUploadStorage(BinaryStorageInterface):
    """
    Filesystem implementation of binary storage.

    Uploads are checked against the configured extension list and size
    limit before anything is written.
    """

    def __init__(
        self,
        upload_folder: Optional[Path] = None,
        allowed_types: Optional[list[str]] = None,
        max_size_bytes: Optional[int] = None,
    ):
        settings = get_settings()
        self._folder = Path(upload_folder) if upload_folder is not None else settings.storage.upload_folder
        self._allowed_types = allowed_types or settings.upload.allowed_types_list
        self._max_size_bytes = max_size_bytes or settings.upload.max_upload_size_bytes

    @property
    def folder(self) -> Path:
        return self._folder

    def _check_upload(self, content: bytes, original_filename: str) -> str:
        """Validate an upload and return its safe display name."""
        name = Path(original_filename or "").name
        if not name:
            raise ValidationError.for_field("file", "No file uploaded.", issue_type="missing")

        extension = Path(name).suffix.lower().lstrip(".")
        if extension not in self._allowed_types:
            raise ValidationError.for_field(
                "file",
                "File upload only supports the following filetypes - "
                + ", ".join(self._allowed_types),
                issue_type="invalid_format",
            )

        if len(content) > self._max_size_bytes:
            raise ValidationError.for_field(
                "file",
                f"File is larger than the {self._max_size_bytes // (1024 * 1024)}MB limit.",
                issue_type="too_large",
            )
        return name

    async def store(self, content: bytes, original_filename: str) -> str:
        name = self._check_upload(content, original_filename)
        filename = f"{uuid4()}_{name}"

        try:
            self._folder.mkdir(parents=True, exist_ok=True)
            self.path_for(filename).write_bytes(content)
        except OSError as e:
            raise StorageFailure(f"Could not store upload {name}: {e}") from e

        logger.info("upload_stored", filename=filename, size=len(content))
        return filename

    async def delete(self, filename: str) -> bool:
        path = self.path_for(filename)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageFailure(f"Could not delete stored file {filename}: {e}") from e

        logger.info("upload_deleted", filename=filename)
        return True

    def path_for(self, filename: str) -> Path:
        # Stored names never contain directories.
        return self._folder / Path(filename).name
