"""
Append-only archival of processed files and their audit metadata.

Layout: ``<root>/<vendor_id>/<YYYY-MM-DD>/<file_id><ext>`` plus
``<file_id>.audit.json`` beside it, dated by the file's received timestamp.
Both writes replace atomically, so archiving a redelivered file overwrites
the earlier copy instead of adding another.
"""

import hashlib
import os
import tempfile
from pathlib import Path, PurePath

from file_exchange.core.errors import ArchiveError
from file_exchange.core.models import AuditRecord, FileArrivalEvent, ValidationResult
from file_exchange.observability.logger import file_context, get_logger
from file_exchange.observability.metrics import (
    archive_write_duration_seconds,
    archive_writes_total,
    increment_counter,
    track_duration,
)

from .audit_index import AuditIndex

logger = get_logger(__name__)

AUDIT_SUFFIX = ".audit.json"


def atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` through a temp file and os.replace."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class FileArchiver:
    """
    Writes archive copies and audit records, optionally indexing them.
    """

    def __init__(self, root: str | Path, index: AuditIndex | None = None):
        self.root = Path(root)
        self.index = index

    def archive_dir(self, event: FileArrivalEvent) -> Path:
        return self.root / event.vendor_id / event.received_at.date().isoformat()

    @staticmethod
    def extension(event: FileArrivalEvent) -> str:
        return PurePath(event.file_name or event.storage_path).suffix.lower()

    def archive(
        self,
        event: FileArrivalEvent,
        content: bytes,
        result: ValidationResult,
        notification_published: bool = False,
    ) -> AuditRecord:
        """
        Archive a processed file.

        Args:
            event: File-arrival event being processed
            content: File bytes as received
            result: Validation verdict of the file
            notification_published: Whether a discrepancy notification went out

        Returns:
            The audit record written

        Raises:
            ArchiveError: If the archive store cannot be written
        """
        directory = self.archive_dir(event)
        content_path = directory / f"{event.file_id}{self.extension(event)}"
        audit_path = directory / f"{event.file_id}{AUDIT_SUFFIX}"

        record = AuditRecord(
            file_id=event.file_id,
            vendor_id=event.vendor_id,
            correlation_id=event.correlation_id,
            file_name=event.file_name,
            content_hash=hashlib.sha256(content).hexdigest(),
            size=len(content),
            received_at=event.received_at,
            record_count=result.record_count,
            is_valid=result.is_valid,
            discrepancy_count=len(result.discrepancies),
            discrepancies_by_kind=result.counts_by_kind(),
            notification_published=notification_published,
            archive_path=str(content_path),
        )

        try:
            with track_duration(archive_write_duration_seconds, vendor_id=event.vendor_id):
                directory.mkdir(parents=True, exist_ok=True)
                atomic_write(content_path, content)
                atomic_write(audit_path, record.model_dump_json(indent=2).encode("utf-8"))
        except OSError as e:
            increment_counter(archive_writes_total, vendor_id=event.vendor_id, status="failure")
            raise ArchiveError(f"Failed to archive file {event.file_id}: {e}") from e

        if self.index is not None:
            self.index.upsert(record)

        increment_counter(archive_writes_total, vendor_id=event.vendor_id, status="success")
        logger.info(f"Archived file to {content_path}", extra=file_context(event))
        return record

    def read_audit(self, event: FileArrivalEvent) -> AuditRecord | None:
        """Audit record previously written for an event, if any."""
        audit_path = self.archive_dir(event) / f"{event.file_id}{AUDIT_SUFFIX}"
        if not audit_path.exists():
            return None
        return AuditRecord.model_validate_json(audit_path.read_bytes())
