"""
Export of sanitized form records.

A record is serialized to pretty-printed JSON and handed to an artifact
sink. The sink hands out a handle (a temporary file, a buffer) that is
always released after the delivery attempt, whether it succeeded or not.
"""

import errno
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from .exceptions import ExportError

logger = logging.getLogger(__name__)

DEFAULT_FILENAME_PREFIX = "employment-form"
SUCCESS_MESSAGE = "Form saved successfully!"

SECURITY_MESSAGE = "Security error: Cannot save file due to access restrictions."
QUOTA_MESSAGE = "Storage quota exceeded. Please free up space and try again."

QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, 'EDQUOT', errno.ENOSPC)}


@dataclass
class ExportResult:
    """
    Outcome of an export attempt.

    Attributes:
        success: Whether the artifact was delivered
        filename: Artifact file name
        location: Where the artifact ended up, on success
        message: User-facing message
        kind: Failure kind ('security', 'quota', 'other'), None on success
    """
    success: bool
    filename: str
    location: Optional[str] = None
    message: str = ""
    kind: Optional[str] = None


def build_filename(today: Optional[date] = None, prefix: str = DEFAULT_FILENAME_PREFIX) -> str:
    """Artifact name for the given day, e.g. 'employment-form-2024-03-15.json'."""
    today = today or date.today()
    return f"{prefix}-{today.isoformat()}.json"


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() else float(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def serialize_record(record: Mapping[str, Any]) -> str:
    """Serialize a record as JSON with two-space indentation."""
    return json.dumps(dict(record), indent=2, ensure_ascii=False, default=_json_default)


class ArtifactSink(ABC):
    """Delivers export artifacts. Subclasses implement acquire/deliver/release."""

    @abstractmethod
    def acquire(self, filename: str, payload: bytes) -> Any:
        """Reserve the destination and stage the payload."""

    @abstractmethod
    def deliver(self, handle: Any) -> str:
        """Commit the staged payload and return where it landed."""

    @abstractmethod
    def release(self, handle: Any) -> None:
        """Free whatever acquire reserved. Called on every path."""


class DirectorySink(ArtifactSink):
    """
    Writes artifacts into a directory.

    The payload is first written to a temporary file next to the target,
    then moved into place. Releasing the handle removes the temporary file
    if it is still there.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def acquire(self, filename: str, payload: bytes) -> Dict[str, Any]:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=".export-", suffix=".tmp", dir=self.directory)
        handle = {'temp_path': Path(temp_name), 'filename': filename}
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(payload)
        except Exception:
            self.release(handle)
            raise
        return handle

    def deliver(self, handle: Dict[str, Any]) -> str:
        target = self.directory / handle['filename']
        os.replace(handle['temp_path'], target)
        logger.info(f"Exported form to {target}")
        return str(target)

    def release(self, handle: Dict[str, Any]) -> None:
        temp_path: Path = handle['temp_path']
        if temp_path.exists():
            temp_path.unlink()
            logger.debug(f"Removed temporary export file {temp_path}")


class MemorySink(ArtifactSink):
    """Keeps the last delivered artifact in memory (used for browser downloads)."""

    def __init__(self):
        self.filename: Optional[str] = None
        self.payload: Optional[bytes] = None
        self.open_handles = 0

    def acquire(self, filename: str, payload: bytes) -> Dict[str, Any]:
        self.open_handles += 1
        return {'filename': filename, 'payload': payload}

    def deliver(self, handle: Dict[str, Any]) -> str:
        self.filename = handle['filename']
        self.payload = handle['payload']
        return f"memory://{self.filename}"

    def release(self, handle: Dict[str, Any]) -> None:
        self.open_handles -= 1
        handle.clear()


@contextmanager
def artifact_handle(sink: ArtifactSink, filename: str, payload: bytes) -> Iterator[Any]:
    """Acquire an artifact handle from the sink and always release it."""
    handle = sink.acquire(filename, payload)
    try:
        yield handle
    finally:
        sink.release(handle)


def classify_export_error(error: Exception) -> ExportError:
    """
    Map an export failure to an ExportError with a user-facing message.

    Permission problems are reported as security restrictions, full disks
    and exhausted quotas as quota errors, anything else generically.
    """
    if isinstance(error, ExportError):
        return error
    if isinstance(error, PermissionError):
        return ExportError(SECURITY_MESSAGE, ExportError.SECURITY, error)
    if isinstance(error, OSError) and error.errno in QUOTA_ERRNOS:
        return ExportError(QUOTA_MESSAGE, ExportError.QUOTA, error)
    return ExportError(f"Failed to export the form: {error}", ExportError.OTHER, error)


def export_record(
    record: Mapping[str, Any],
    sink: ArtifactSink,
    today: Optional[date] = None,
    prefix: str = DEFAULT_FILENAME_PREFIX
) -> ExportResult:
    """
    Serialize a sanitized record and deliver it through the sink.

    Args:
        record: Sanitized record
        sink: Artifact sink
        today: Date used in the file name (defaults to today)
        prefix: File name prefix

    Returns:
        ExportResult; failures are classified, logged and reported, not raised
    """
    filename = build_filename(today, prefix)

    try:
        payload = serialize_record(record).encode('utf-8')
        with artifact_handle(sink, filename, payload) as handle:
            location = sink.deliver(handle)
    except Exception as e:
        classified = classify_export_error(e)
        logger.error(f"Export error ({classified.kind}) for {filename}: {e}", exc_info=True)
        return ExportResult(
            success=False,
            filename=filename,
            message=classified.message,
            kind=classified.kind,
        )

    return ExportResult(success=True, filename=filename, location=location, message=SUCCESS_MESSAGE)
