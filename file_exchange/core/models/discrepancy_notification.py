"""
DiscrepancyNotification model: outbound message for a file that failed validation.
"""

from datetime import datetime, timezone

from pydantic import Field

from .discrepancy import Discrepancy
from .message import MessageModel


class DiscrepancyNotification(MessageModel):
    """
    Published once per failing file to the vendor's notification queue.

    Attributes:
        vendor_id: Vendor the file belongs to
        file_id: File that failed validation
        correlation_id: Correlation id of the originating file event
        file_name: Original file name, for the notification text
        recipients: Notification recipients from the vendor profile
        discrepancies: Every discrepancy found in the file
        created_at: When the notification was built
    """

    vendor_id: str
    file_id: str
    correlation_id: str
    file_name: str | None = None
    recipients: tuple[str, ...] = ()
    discrepancies: tuple[Discrepancy, ...] = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
