"""
Event-driven consume loop for the orchestrator.

The consumer and the ingestion poller are independent tasks that only
communicate through the queue.
"""

import threading

from file_exchange.core.errors import BrokerUnavailable
from file_exchange.messaging import MessageBroker
from file_exchange.observability.logger import get_logger

from .orchestrator import PipelineOrchestrator

logger = get_logger(__name__)


class ConsumerWorker:
    """
    Runs the orchestrator against one inbound queue until stopped.

    A lost broker connection is re-established on the next loop iteration
    after ``reconnect_delay`` seconds.
    """

    def __init__(
        self,
        broker: MessageBroker,
        orchestrator: PipelineOrchestrator,
        queue_name: str,
        stop_event: threading.Event | None = None,
        reconnect_delay: float = 5.0,
    ):
        self.broker = broker
        self.orchestrator = orchestrator
        self.queue_name = queue_name
        self.stop_event = stop_event or orchestrator.stop_event
        self.reconnect_delay = reconnect_delay

    def run(self) -> None:
        logger.info(f"Consumer worker starting on {self.queue_name}", extra={"queue": self.queue_name})

        while not self.stop_event.is_set():
            try:
                self.broker.consume(self.queue_name, self.orchestrator.handle, self.stop_event)
            except BrokerUnavailable as e:
                logger.error(
                    f"Broker unavailable, retrying in {self.reconnect_delay:.0f}s: {e}",
                    extra={"queue": self.queue_name},
                )
                self.stop_event.wait(self.reconnect_delay)

        logger.info("Consumer worker stopped", extra={"queue": self.queue_name})

    def stop(self) -> None:
        self.stop_event.set()
