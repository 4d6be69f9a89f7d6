"""
IssueReport model: third-party issue raised by a vendor through its mailbox.
"""

from datetime import datetime, timezone

from pydantic import Field

from .file_arrival_event import new_correlation_id
from .message import MessageModel


class IssueReport(MessageModel):
    """
    Published on ``issue.reported`` by the mailbox monitor.

    Attributes:
        vendor_id: Vendor that raised the issue
        file_id: File the issue refers to, when the mail names one
        description: Free-text description taken from the mail body
        email_subject: Subject line of the originating mail
        correlation_id: Correlation id (taken from the mail when present)
        reported_at: When the mail was picked up
    """

    vendor_id: str = Field(..., min_length=1)
    file_id: str | None = None
    description: str
    email_subject: str
    correlation_id: str = Field(default_factory=new_correlation_id)
    reported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
