"""
Shared constants: queue names, message headers and content types.
"""

# Queue contracts
FILE_RECEIVED_QUEUE = "file.received"
DISCREPANCY_QUEUE = "email.discrepancy"
ISSUE_REPORTED_QUEUE = "issue.reported"

DEAD_LETTER_SUFFIX = ".dead-letter"

# Message headers
ATTEMPT_HEADER = "x-attempt"
NOTIFIED_HEADER = "x-notified"
DEATH_REASON_HEADER = "x-death-reason"
ORIGINAL_QUEUE_HEADER = "x-original-queue"

JSON_CONTENT_TYPE = "application/json"

DEFAULT_DATE_FORMAT = "%Y-%m-%d"
DEFAULT_POLL_INTERVAL_SECONDS = 300


def dead_letter_queue(queue_name: str) -> str:
    """Return the dead-letter queue paired with ``queue_name``."""
    return f"{queue_name}{DEAD_LETTER_SUFFIX}"
