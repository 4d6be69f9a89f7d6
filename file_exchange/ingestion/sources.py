"""
File sources: where new vendor files are discovered.

Remote transfer clients (SFTP and the like) implement the same FileSource
protocol as the local drop-folder source below.
"""

import hashlib
import shutil
import uuid
from pathlib import Path
from typing import Protocol

from file_exchange.core.models import FileArrivalEvent, VendorProfile, new_correlation_id
from file_exchange.observability.logger import get_logger

logger = get_logger(__name__)


class FileSource(Protocol):
    def fetch_new_files(self, profile: VendorProfile) -> list[FileArrivalEvent]: ...

    def release(self, event: FileArrivalEvent) -> None: ...


def sha256_file(path: Path, chunk_size: int = 65536) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


class LocalDropSource:
    """
    Picks files up from ``<drop_root>/<vendor_id>/``.

    Each file is moved to ``<staging_root>/<vendor_id>/<file_id><ext>`` so
    it is never picked up twice, and described by a new FileArrivalEvent.
    Hidden files and directories are ignored. A staged file whose event
    could not be published is handed back to the drop folder by release().
    """

    def __init__(self, drop_root: str | Path, staging_root: str | Path):
        self.drop_root = Path(drop_root)
        self.staging_root = Path(staging_root)

    def fetch_new_files(self, profile: VendorProfile) -> list[FileArrivalEvent]:
        vendor_dir = self.drop_root / profile.vendor_id
        if not vendor_dir.is_dir():
            return []

        staging_dir = self.staging_root / profile.vendor_id
        staging_dir.mkdir(parents=True, exist_ok=True)

        events: list[FileArrivalEvent] = []
        for path in sorted(vendor_dir.iterdir()):
            if not path.is_file() or path.name.startswith("."):
                continue

            file_id = uuid.uuid4().hex
            staged = staging_dir / f"{file_id}{path.suffix.lower()}"
            shutil.move(str(path), staged)

            events.append(
                FileArrivalEvent(
                    file_id=file_id,
                    vendor_id=profile.vendor_id,
                    storage_path=str(staged),
                    file_name=path.name,
                    content_hash=sha256_file(staged),
                    size=staged.stat().st_size,
                    correlation_id=new_correlation_id(),
                )
            )
            logger.debug(
                f"Staged {path.name}",
                extra={"vendor_id": profile.vendor_id, "file_id": file_id},
            )
        return events

    def release(self, event: FileArrivalEvent) -> None:
        """Move a staged file back to its vendor's drop folder."""
        staged = Path(event.storage_path)
        vendor_dir = self.drop_root / event.vendor_id
        vendor_dir.mkdir(parents=True, exist_ok=True)

        target = vendor_dir / (event.file_name or staged.name)
        if target.exists():
            target = vendor_dir / f"{event.file_id}_{target.name}"
        shutil.move(str(staged), target)
        logger.warning(
            f"Returned {target.name} to the drop folder",
            extra={"vendor_id": event.vendor_id, "file_id": event.file_id},
        )
