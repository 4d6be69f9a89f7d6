"""
Time-driven ingestion: file discovery and issue-mail monitoring.
"""

from .issue_monitor import InboundMail, IssueMonitor, MaildirMailboxSource, MailboxSource, extract_file_id
from .poller import IngestionPoller
from .polling import PollingLoop
from .sources import FileSource, LocalDropSource

__all__ = [
    "FileSource",
    "InboundMail",
    "IngestionPoller",
    "IssueMonitor",
    "LocalDropSource",
    "MailboxSource",
    "MaildirMailboxSource",
    "PollingLoop",
    "extract_file_id",
]
