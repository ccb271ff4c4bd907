"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON file is the storage backend because:
1. The data set is small (one business, hundreds of contracts)
2. No database setup required
3. The file can be inspected and backed up by hand

TRADEOFFS:
- Every save rewrites the whole document
- No transactions (we write to a temp file and swap it in atomically)
- One writer process only

The implementation follows the abstract interface, so we can swap
to SQLite/PostgreSQL later without changing business logic.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

import pydantic
import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from vendor_ledger.config import get_settings
from vendor_ledger.errors import CorruptDataError, StorageFailure
from vendor_ledger.models.ledger import Document, utc_timestamp
from vendor_ledger.services.storage.interface import DocumentStorageInterface


logger = structlog.get_logger(__name__)


def parse_document(raw: str, source: str) -> Document:
    """
    Parse stored JSON text into a Document.

    Empty text is an empty document. Anything that is not a JSON object
    matching the document schema is corrupt.
    """
    if not raw.strip():
        return Document()

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptDataError(f"Ledger document {source} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise CorruptDataError(
            f"Ledger document {source} must be a JSON object, got {type(data).__name__}"
        )

    try:
        return Document.model_validate(data)
    except pydantic.ValidationError as e:
        raise CorruptDataError(f"Ledger document {source} does not match the schema: {e}") from e


class JsonFileDocumentStorage(DocumentStorageInterface):
    """
    Stores the ledger document as one JSON file.

    Writes go to a temp file in the same directory, are fsynced, then
    renamed over the target, so readers never see a half-written file.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        indent: Optional[int] = None,
        write_retries: Optional[int] = None,
    ):
        settings = get_settings().storage
        self._path = Path(path) if path is not None else settings.data_file
        self._indent = indent if indent is not None else settings.json_indent
        self._write_retries = write_retries or settings.write_retries

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> Document:
        """Load the document from disk (empty document if the file is absent)."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Document()
        except UnicodeDecodeError as e:
            raise CorruptDataError(f"Ledger document {self._path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StorageFailure(f"Could not read ledger document {self._path}: {e}") from e

        return parse_document(raw, str(self._path))

    async def save(self, document: Document) -> None:
        """Stamp ``last_updated`` and atomically replace the file."""
        document.last_updated = utc_timestamp()
        text = json.dumps(document.to_storage_dict(), indent=self._indent)

        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._write_retries),
                wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
                retry=retry_if_exception_type(OSError),
                reraise=True,
            ):
                with attempt:
                    self._write_atomic(text)
        except OSError as e:
            logger.error("document_save_failed", path=str(self._path), error=str(e))
            raise StorageFailure(f"Could not save ledger document {self._path}: {e}") from e

    def _write_atomic(self, text: str) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=directory,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except Exception:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
