"""
VendorProfile model: per-vendor parsing format, rule set and queue routing.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from file_exchange.core.constants import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DISCREPANCY_QUEUE,
    FILE_RECEIVED_QUEUE,
    ISSUE_REPORTED_QUEUE,
)

from .validation_rule import ValidationRule


class QueueRouting(BaseModel):
    """
    Queue names a vendor's messages are routed through.

    Attributes:
        inbound: Queue file-arrival events are published to
        notification: Queue discrepancy notifications are published to
        issues: Queue third-party issue reports are published to
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    inbound: str = FILE_RECEIVED_QUEUE
    notification: str = DISCREPANCY_QUEUE
    issues: str = ISSUE_REPORTED_QUEUE


class VendorProfile(BaseModel):
    """
    Read-only configuration for one vendor, immutable for a pipeline run.

    Attributes:
        vendor_id: The only valid lookup key
        name: Display name
        file_format: Declared format ("csv", "json", "xml", "text")
        delimiter: Single-character column delimiter for delimited text
        field_separator: Separator between key/value pairs in line-based text
        key_value_separator: Separator between key and value in line-based text
        encoding: Text encoding of the decrypted content
        has_header: Whether delimited text starts with a header row
        encrypted: Whether content must be decrypted before parsing
        poll_interval_seconds: How often the vendor's drop point is scanned
        queues: Queue routing names
        notification_recipients: Who receives discrepancy notifications
        rules: Ordered rule set
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    vendor_id: str = Field(..., min_length=1)
    name: str = ""
    file_format: str = "csv"
    delimiter: str = Field(",", min_length=1, max_length=1)
    field_separator: str = Field(";", min_length=1)
    key_value_separator: str = Field(":", min_length=1)
    encoding: str = "utf-8"
    has_header: bool = True
    encrypted: bool = False
    poll_interval_seconds: int = Field(DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    queues: QueueRouting = Field(default_factory=QueueRouting)
    notification_recipients: tuple[str, ...] = ()
    rules: tuple[ValidationRule, ...] = ()

    @field_validator("file_format")
    @classmethod
    def normalize_format(cls, v: str) -> str:
        # Unsupported formats are accepted here and rejected by the parser
        return v.strip().lower()

    def active_rules(self) -> list:
        return [rule for rule in self.rules if rule.enabled]
