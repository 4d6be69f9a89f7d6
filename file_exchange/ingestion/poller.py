"""
Ingestion poller: publishes a FileArrivalEvent for each newly found file.
"""

import threading

from file_exchange.config.vendor_profiles import VendorProfileStore
from file_exchange.observability.logger import file_context, get_logger
from file_exchange.observability.metrics import files_discovered_total, increment_counter

from .polling import PollingLoop
from .sources import FileSource

logger = get_logger(__name__)


class IngestionPoller(PollingLoop):
    """
    Scans every vendor's file source on a shared tick.

    The tick is the shortest poll interval across vendors. A failure for
    one vendor is logged and does not stop the others.
    """

    name = "ingestion poller"

    def __init__(
        self,
        profiles: VendorProfileStore,
        source: FileSource,
        publisher,
        stop_event: threading.Event | None = None,
    ):
        super().__init__(profiles.min_poll_interval(), stop_event)
        self.profiles = profiles
        self.source = source
        self.publisher = publisher

    def poll_once(self) -> int:
        published = 0
        for profile in self.profiles:
            if self.stop_event.is_set():
                break
            try:
                published += self._publish_events(profile, self.source.fetch_new_files(profile))
            except Exception:
                logger.exception(
                    f"Failed to process files for vendor {profile.vendor_id}",
                    extra={"vendor_id": profile.vendor_id},
                )
        return published

    def _publish_events(self, profile, events: list) -> int:
        # Files without a published event go back to the source for the next poll
        for index, event in enumerate(events):
            try:
                self.publisher.publish(profile.queues.inbound, event)
            except Exception:
                logger.exception(
                    f"Publishing to {profile.queues.inbound} failed, returning {len(events) - index} file(s) to the source",
                    extra=file_context(event),
                )
                for pending in events[index:]:
                    self.source.release(pending)
                return index
            increment_counter(files_discovered_total, vendor_id=profile.vendor_id)
            logger.info("Published file received message", extra=file_context(event))
        return len(events)
