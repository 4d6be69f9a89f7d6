"""
Time-driven polling loop.
"""

import threading
from abc import ABC, abstractmethod

from file_exchange.observability.logger import get_logger

logger = get_logger(__name__)


class PollingLoop(ABC):
    """
    Calls poll_once() every ``interval`` seconds until the stop event is set.

    Cancellation is checked on every iteration and while waiting, so a stop
    request never waits out a full interval. A failed iteration is logged
    and retried after ``error_delay`` seconds.
    """

    name = "poller"

    def __init__(
        self,
        interval: float,
        stop_event: threading.Event | None = None,
        error_delay: float = 60.0,
    ):
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")
        self.interval = interval
        self.stop_event = stop_event or threading.Event()
        self.error_delay = error_delay

    @abstractmethod
    def poll_once(self) -> int:
        """Run one polling pass; returns the number of items published."""

    def run(self) -> None:
        logger.info(f"{self.name} started (interval {self.interval}s)")

        while not self.stop_event.is_set():
            try:
                self.poll_once()
                delay = self.interval
            except Exception:
                logger.exception(f"Error in {self.name} iteration")
                delay = self.error_delay
            self.stop_event.wait(delay)

        logger.info(f"{self.name} stopped")

    def stop(self) -> None:
        self.stop_event.set()
