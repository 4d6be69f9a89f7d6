"""
AuditRecord model: metadata persisted next to every archived file.
"""

from datetime import datetime, timezone

from pydantic import Field

from .message import MessageModel


class AuditRecord(MessageModel):
    """
    Append-only archival metadata for a processed file.

    Writing the same file twice (redelivery) overwrites the previous record.

    Attributes:
        file_id: Archived file (primary key)
        vendor_id: Vendor of the file
        correlation_id: Correlation id of the originating event
        file_name: Original file name
        content_hash: SHA-256 digest of the archived bytes
        size: Archived size in bytes
        received_at: When the file was ingested
        processed_at: When this archival happened
        record_count: Records parsed from the file
        is_valid: Validation verdict
        discrepancy_count: Total discrepancies
        discrepancies_by_kind: Discrepancy counts per rule kind
        notification_published: Whether a discrepancy notification went out
        archive_path: Location of the archived content
    """

    file_id: str = Field(..., min_length=1)
    vendor_id: str
    correlation_id: str
    file_name: str | None = None
    content_hash: str
    size: int = Field(..., ge=0)
    received_at: datetime
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    record_count: int = Field(..., ge=0)
    is_valid: bool
    discrepancy_count: int = Field(..., ge=0)
    discrepancies_by_kind: dict[str, int] = Field(default_factory=dict)
    notification_published: bool = False
    archive_path: str
