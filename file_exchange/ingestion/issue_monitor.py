"""
Third-party issue monitoring.

Vendors report problems by mail. Unseen mails are turned into IssueReport
messages on the vendor's issues queue.
"""

import mailbox
import re
import threading
from email.message import Message
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from file_exchange.config.vendor_profiles import VendorProfileStore
from file_exchange.core.models import IssueReport
from file_exchange.observability.logger import get_logger
from file_exchange.observability.metrics import increment_counter, issues_reported_total

from .polling import PollingLoop

logger = get_logger(__name__)

FILE_ID_PATTERN = re.compile(r"File ID:\s*([A-Za-z0-9\-]+)", re.IGNORECASE)
CORRELATION_ID_PATTERN = re.compile(r"Correlation ID:\s*([A-Za-z0-9\-]+)", re.IGNORECASE)

DEFAULT_ISSUE_INTERVAL_SECONDS = 300


class InboundMail(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject: str = ""
    body: str = ""


class MailboxSource(Protocol):
    def fetch_unseen(self, vendor_id: str) -> list[InboundMail]: ...


def extract_file_id(text: str) -> str | None:
    """``"Re: File ID: 3f2a-9c51 rejected"`` -> ``"3f2a-9c51"``"""
    match = FILE_ID_PATTERN.search(text)
    return match.group(1) if match else None


def _message_text(message: Message) -> str:
    if message.is_multipart():
        for part in message.walk():
            if part.get_content_type() == "text/plain":
                payload = part.get_payload(decode=True) or b""
                return payload.decode(part.get_content_charset() or "utf-8", errors="replace")
        return ""
    payload = message.get_payload(decode=True) or b""
    return payload.decode(message.get_content_charset() or "utf-8", errors="replace")


class MaildirMailboxSource:
    """
    Reads unseen mails from ``<root>/<vendor_id>/`` Maildir folders.

    Messages in ``new/`` are returned once and then moved to ``cur/``.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def fetch_unseen(self, vendor_id: str) -> list[InboundMail]:
        path = self.root / vendor_id
        if not path.is_dir():
            return []

        box = mailbox.Maildir(path, create=False)
        mails: list[InboundMail] = []
        box.lock()
        try:
            for key in list(box.iterkeys()):
                message = box[key]
                if message.get_subdir() != "new":
                    continue
                mails.append(InboundMail(subject=message.get("Subject", ""), body=_message_text(message).strip()))
                message.set_subdir("cur")
                message.add_flag("S")
                box[key] = message
        finally:
            box.unlock()
            box.close()
        return mails


class IssueMonitor(PollingLoop):
    """
    Polls each vendor's mailbox and publishes one IssueReport per mail.
    """

    name = "issue monitor"

    def __init__(
        self,
        profiles: VendorProfileStore,
        mailbox_source: MailboxSource,
        publisher,
        interval: float = DEFAULT_ISSUE_INTERVAL_SECONDS,
        stop_event: threading.Event | None = None,
    ):
        super().__init__(interval, stop_event)
        self.profiles = profiles
        self.mailbox_source = mailbox_source
        self.publisher = publisher

    def build_report(self, vendor_id: str, mail: InboundMail) -> IssueReport:
        correlation = CORRELATION_ID_PATTERN.search(mail.body) or CORRELATION_ID_PATTERN.search(mail.subject)
        fields = {
            "vendor_id": vendor_id,
            "file_id": extract_file_id(mail.subject) or extract_file_id(mail.body),
            "description": mail.body,
            "email_subject": mail.subject,
        }
        if correlation:
            fields["correlation_id"] = correlation.group(1)
        return IssueReport(**fields)

    def poll_once(self) -> int:
        published = 0
        for profile in self.profiles:
            if self.stop_event.is_set():
                break
            try:
                for mail in self.mailbox_source.fetch_unseen(profile.vendor_id):
                    report = self.build_report(profile.vendor_id, mail)
                    self.publisher.publish(profile.queues.issues, report)
                    increment_counter(issues_reported_total, vendor_id=profile.vendor_id)
                    logger.info(
                        "Published third-party issue",
                        extra={
                            "vendor_id": profile.vendor_id,
                            "file_id": report.file_id,
                            "correlation_id": report.correlation_id,
                        },
                    )
                    published += 1
            except Exception:
                logger.exception(
                    f"Error monitoring mailbox for vendor {profile.vendor_id}",
                    extra={"vendor_id": profile.vendor_id},
                )
        return published
