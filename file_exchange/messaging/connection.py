"""
RabbitMQ connection management using pika

This module provides one explicitly owned connection manager per worker
process. The connection and channel are opened lazily on first use and
reopened on the next use after they are lost; there is no background
reconnect loop.
"""
import ssl
import threading

import pika
from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPError

from file_exchange.config.settings import BrokerSettings
from file_exchange.core.errors import BrokerUnavailable
from file_exchange.observability.logger import get_logger
from file_exchange.observability.metrics import (
    broker_connected,
    broker_reconnects_total,
    increment_counter,
    set_gauge,
)

logger = get_logger(__name__)


class BrokerConnectionManager:
    """
    RabbitMQ connection manager using pika's BlockingConnection

    The channel returned by channel() belongs to the manager and must only
    be used by one thread at a time; each worker owns its own manager.
    """

    def __init__(
        self,
        settings: BrokerSettings | None = None,
        connection_factory=None,
    ) -> None:
        """
        Initialize the connection manager

        Args:
            settings: Broker settings (defaults to BrokerSettings())
            connection_factory: Callable taking pika ConnectionParameters
                (defaults to pika.BlockingConnection)
        """
        self.settings = settings or BrokerSettings()
        self._connection_factory = connection_factory or pika.BlockingConnection
        self._lock = threading.Lock()
        self._connection = None
        self._channel: BlockingChannel | None = None
        self.declared_queues: set[str] = set()

    def parameters(self) -> pika.ConnectionParameters:
        """Build pika connection parameters from settings"""
        s = self.settings
        ssl_options = None
        if s.use_tls:
            ssl_options = pika.SSLOptions(ssl.create_default_context(), s.host)

        return pika.ConnectionParameters(
            host=s.host,
            port=s.port,
            virtual_host=s.virtual_host,
            credentials=pika.PlainCredentials(s.username, s.password),
            heartbeat=s.heartbeat,
            ssl_options=ssl_options,
            connection_attempts=s.connection_attempts,
            retry_delay=s.retry_delay,
        )

    def _ensure_connection(self):
        # Caller holds self._lock
        if self._connection is None or not self._connection.is_open:
            try:
                self._connection = self._connection_factory(self.parameters())
            except (AMQPError, OSError) as e:
                set_gauge(broker_connected, 0, host=self.settings.host)
                raise BrokerUnavailable(
                    f"Cannot connect to broker at {self.settings.host}:{self.settings.port}: {e}"
                ) from e

            self._channel = None
            self.declared_queues.clear()
            increment_counter(broker_reconnects_total, host=self.settings.host)
            set_gauge(broker_connected, 1, host=self.settings.host)
            logger.info(
                "Connected to broker",
                extra={"host": self.settings.host, "port": self.settings.port},
            )
        return self._connection

    def channel(self) -> BlockingChannel:
        """
        Get the manager's channel, (re)connecting if needed

        Raises:
            BrokerUnavailable: If no connection can be established
        """
        with self._lock:
            connection = self._ensure_connection()
            if self._channel is None or not self._channel.is_open:
                try:
                    self._channel = connection.channel()
                    self._channel.confirm_delivery()
                except AMQPError as e:
                    raise BrokerUnavailable(f"Cannot open broker channel: {e}") from e
                self.declared_queues.clear()
            return self._channel

    def reset(self) -> None:
        """Drop the current connection so the next use reconnects"""
        with self._lock:
            self._close_locked()

    def close(self) -> None:
        """Close channel and connection"""
        with self._lock:
            self._close_locked()

    def _close_locked(self) -> None:
        connection, self._connection = self._connection, None
        self._channel = None
        self.declared_queues.clear()
        set_gauge(broker_connected, 0, host=self.settings.host)
        if connection is not None and connection.is_open:
            try:
                connection.close()
            except AMQPError as e:
                logger.warning(f"Error closing broker connection: {e}")

    def check_connectivity(self) -> bool:
        """
        Check that the broker is reachable

        Returns:
            True if a connection is (or can be) open
        """
        try:
            self.channel()
            return True
        except BrokerUnavailable as e:
            logger.warning(f"Broker connectivity check failed: {e}")
            return False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
