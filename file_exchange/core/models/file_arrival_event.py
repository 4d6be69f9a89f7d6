"""
FileArrivalEvent model: a downloaded vendor file that is ready for processing.
"""

import uuid
from datetime import datetime, timezone

from pydantic import Field

from .message import MessageModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_correlation_id() -> str:
    """Generate a fresh correlation id for a newly ingested file."""
    return uuid.uuid4().hex


class FileArrivalEvent(MessageModel):
    """
    Published on ``file.received`` by the ingestion side, consumed by the orchestrator.

    Attributes:
        file_id: Unique id of this file (one per event)
        vendor_id: Vendor that supplied the file (lookup key for its profile)
        storage_path: Where the downloaded content can be read from
        file_name: Original file name on the remote drop point
        content_hash: SHA-256 hex digest of the content, if known
        size: Content size in bytes
        correlation_id: Propagated unchanged to every derived message
        received_at: When the file was picked up
    """

    file_id: str = Field(..., min_length=1)
    vendor_id: str = Field(..., min_length=1)
    storage_path: str = Field(..., min_length=1)
    file_name: str | None = None
    content_hash: str | None = None
    size: int = Field(0, ge=0)
    correlation_id: str = Field(default_factory=new_correlation_id, min_length=1)
    received_at: datetime = Field(default_factory=_utcnow)

    model_config = {
        "json_schema_extra": {
            "example": {
                "fileId": "3f2a9c51d7e84b0f",
                "vendorId": "acme",
                "storagePath": "/var/lib/file-exchange/staging/acme/3f2a9c51d7e84b0f.csv",
                "fileName": "payments_20261019.csv",
                "contentHash": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
                "size": 2048,
                "correlationId": "6b1c3b1e0a7a4d8c9f1d2e3a4b5c6d7e",
                "receivedAt": "2026-10-19T08:15:00Z",
            }
        }
    }
