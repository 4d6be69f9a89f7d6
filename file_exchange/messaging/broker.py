"""
Message broker client: durable publish and explicit-acknowledgment consume.

Every consumed message ends in exactly one disposition chosen by the
handler: Ack (remove), Requeue (transient failure, deliver again later) or
DeadLetter (permanent failure, move to ``<queue>.dead-letter``).

Requeue is bounded. The message is republished to the tail of its queue
with an incremented ``x-attempt`` header and the original delivery is
acknowledged; once the attempt ceiling is reached the message is
dead-lettered instead.
"""

import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

import pika
from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPError
from pydantic import BaseModel, ConfigDict, Field

from file_exchange.config.settings import RetrySettings
from file_exchange.core.constants import (
    ATTEMPT_HEADER,
    DEATH_REASON_HEADER,
    JSON_CONTENT_TYPE,
    NOTIFIED_HEADER,
    ORIGINAL_QUEUE_HEADER,
    dead_letter_queue,
)
from file_exchange.core.errors import BrokerUnavailable
from file_exchange.observability.logger import get_logger
from file_exchange.observability.metrics import increment_counter, messages_published_total

from .connection import BrokerConnectionManager
from .serializer import JsonMessageSerializer

logger = get_logger(__name__)


class Disposition(str, Enum):
    """Terminal decision for one delivered message."""

    ACK = "ack"
    REQUEUE = "requeue"
    DEAD_LETTER = "dead_letter"


class HandlerResult(BaseModel):
    """
    What a handler decided for a delivery.

    Attributes:
        disposition: Ack, Requeue or DeadLetter
        reason: Why the message was requeued or dead-lettered
        notified: A discrepancy notification was already published for this file
        count_attempt: False for requeues that must not consume a retry attempt
    """

    model_config = ConfigDict(frozen=True)

    disposition: Disposition
    reason: str = ""
    notified: bool = False
    count_attempt: bool = True

    @classmethod
    def ack(cls) -> "HandlerResult":
        return cls(disposition=Disposition.ACK)

    @classmethod
    def requeue(cls, reason: str, notified: bool = False, count_attempt: bool = True) -> "HandlerResult":
        return cls(
            disposition=Disposition.REQUEUE,
            reason=reason,
            notified=notified,
            count_attempt=count_attempt,
        )

    @classmethod
    def dead_letter(cls, reason: str) -> "HandlerResult":
        return cls(disposition=Disposition.DEAD_LETTER, reason=reason)


class Delivery(BaseModel):
    """
    One message handed to a handler.

    Attributes:
        queue: Queue the message was consumed from
        body: Raw payload
        delivery_tag: Broker delivery tag used to settle the message
        redelivered: Broker redelivery flag (set after a crash before ack)
        content_type: Content type of the payload
        headers: Message headers
    """

    model_config = ConfigDict(frozen=True)

    queue: str
    body: bytes
    delivery_tag: int = 0
    redelivered: bool = False
    content_type: str | None = None
    headers: dict[str, Any] = Field(default_factory=dict)

    @property
    def attempt(self) -> int:
        """1-based delivery attempt carried in the ``x-attempt`` header."""
        try:
            return max(int(self.headers.get(ATTEMPT_HEADER, 1)), 1)
        except (TypeError, ValueError):
            return 1

    @property
    def notified(self) -> bool:
        value = self.headers.get(NOTIFIED_HEADER, False)
        if isinstance(value, bytes):
            value = value.decode()
        if isinstance(value, str):
            return value.lower() == "true"
        return bool(value)


Handler = Callable[[Delivery], HandlerResult]


class MessageBroker:
    """
    Publish/consume client on top of a BrokerConnectionManager.

    Queues are declared durable, non-exclusive and not auto-deleted.
    Messages are persistent and published through the default exchange with
    the queue name as routing key.
    """

    def __init__(
        self,
        connection: BrokerConnectionManager,
        retry: RetrySettings | None = None,
        serializer: JsonMessageSerializer | None = None,
    ):
        self.connection = connection
        self.retry = retry or RetrySettings()
        self.serializer = serializer or JsonMessageSerializer()

    # =======================
    # PUBLISH
    # =======================

    def declare_queue(self, queue_name: str, channel: BlockingChannel | None = None) -> None:
        """Declare a durable queue (once per connection)."""
        if queue_name in self.connection.declared_queues and channel is None:
            return
        channel = channel or self.connection.channel()
        channel.queue_declare(queue=queue_name, durable=True, exclusive=False, auto_delete=False)
        self.connection.declared_queues.add(queue_name)

    def publish(
        self,
        queue_name: str,
        payload: BaseModel | dict | bytes,
        content_type: str = JSON_CONTENT_TYPE,
        headers: dict[str, Any] | None = None,
    ) -> None:
        """
        Durably enqueue a payload.

        Args:
            queue_name: Target queue
            payload: Pydantic message, JSON-compatible dict, or raw bytes
            content_type: Content type recorded on the message
            headers: Optional message headers

        Raises:
            BrokerUnavailable: If no connection can be established or the
                broker does not confirm the publish
        """
        body = payload if isinstance(payload, bytes) else self.serializer.serialize(payload)
        properties = pika.BasicProperties(
            content_type=content_type,
            delivery_mode=pika.DeliveryMode.Persistent,
            headers=headers or None,
        )

        try:
            channel = self.connection.channel()
            self.declare_queue(queue_name)
            channel.basic_publish(exchange="", routing_key=queue_name, body=body, properties=properties)
        except AMQPError as e:
            self.connection.reset()
            logger.error(f"Error publishing message to queue {queue_name}: {e}")
            raise BrokerUnavailable(f"Publish to '{queue_name}' failed: {e}") from e

        increment_counter(messages_published_total, queue=queue_name)
        logger.info(f"Published message to queue {queue_name}", extra={"queue": queue_name})

    # =======================
    # CONSUME
    # =======================

    def consume(
        self,
        queue_name: str,
        handler: Handler,
        stop_event: threading.Event | None = None,
        inactivity_timeout: float = 1.0,
    ) -> None:
        """
        Consume messages one at a time until ``stop_event`` is set.

        Messages are never acknowledged automatically; the handler's result
        decides. A handler exception is treated as Requeue. Prefetch is 1,
        so a message is settled before the next one is delivered.

        Raises:
            BrokerUnavailable: If the connection is lost; the caller decides
                whether to reconnect and consume again
        """
        stop_event = stop_event or threading.Event()

        try:
            channel = self.connection.channel()
            self.declare_queue(queue_name, channel)
            self.declare_queue(dead_letter_queue(queue_name), channel)
            channel.basic_qos(prefetch_count=1)

            logger.info(f"Consuming from queue {queue_name}", extra={"queue": queue_name})

            for method, properties, body in channel.consume(queue_name, inactivity_timeout=inactivity_timeout):
                if method is None:
                    if stop_event.is_set():
                        break
                    continue

                if stop_event.is_set():
                    # Not processed; hand it back to the queue as-is
                    channel.basic_nack(delivery_tag=method.delivery_tag, requeue=True)
                    break

                delivery = Delivery(
                    queue=queue_name,
                    body=body,
                    delivery_tag=method.delivery_tag,
                    redelivered=bool(method.redelivered),
                    content_type=properties.content_type,
                    headers=dict(properties.headers or {}),
                )
                result = self._invoke(handler, delivery)
                self.settle(channel, delivery, result, stop_event)

            channel.cancel()
        except AMQPError as e:
            self.connection.reset()
            raise BrokerUnavailable(f"Consuming from '{queue_name}' failed: {e}") from e

    def _invoke(self, handler: Handler, delivery: Delivery) -> HandlerResult:
        try:
            return handler(delivery)
        except Exception as e:
            # A failing handler must not stop the consume loop
            logger.exception(
                f"Handler raised for message on {delivery.queue}, requeueing",
                extra={"queue": delivery.queue, "delivery_tag": delivery.delivery_tag},
            )
            return HandlerResult.requeue(f"{type(e).__name__}: {e}", notified=delivery.notified)

    def settle(
        self,
        channel: BlockingChannel,
        delivery: Delivery,
        result: HandlerResult,
        stop_event: threading.Event | None = None,
    ) -> Disposition:
        """
        Apply a handler result to a delivery.

        Returns:
            The disposition actually applied (a requeue past the attempt
            ceiling becomes a dead-letter)
        """
        if result.disposition is Disposition.ACK:
            channel.basic_ack(delivery_tag=delivery.delivery_tag)
            return Disposition.ACK

        if result.disposition is Disposition.DEAD_LETTER:
            self._dead_letter(channel, delivery, result.reason)
            return Disposition.DEAD_LETTER

        if not result.count_attempt:
            if result.notified and not delivery.notified:
                # Same attempt, but the redelivery must not notify again
                headers = dict(delivery.headers)
                headers[NOTIFIED_HEADER] = True
                self._republish(channel, delivery.queue, delivery, headers)
                channel.basic_ack(delivery_tag=delivery.delivery_tag)
            else:
                channel.basic_nack(delivery_tag=delivery.delivery_tag, requeue=True)
            return Disposition.REQUEUE

        attempt = delivery.attempt
        if attempt >= self.retry.max_attempts:
            self._dead_letter(
                channel,
                delivery,
                f"retry limit of {self.retry.max_attempts} attempts reached: {result.reason}",
            )
            return Disposition.DEAD_LETTER

        delay = self.retry.backoff_for(attempt)
        logger.warning(
            f"Requeueing message from {delivery.queue} (attempt {attempt}) after {delay:.1f}s: {result.reason}",
            extra={"queue": delivery.queue, "attempt": attempt},
        )
        if delay > 0:
            (stop_event or threading.Event()).wait(delay)

        headers = dict(delivery.headers)
        headers[ATTEMPT_HEADER] = attempt + 1
        if result.notified or delivery.notified:
            headers[NOTIFIED_HEADER] = True

        self._republish(channel, delivery.queue, delivery, headers)
        channel.basic_ack(delivery_tag=delivery.delivery_tag)
        return Disposition.REQUEUE

    def _dead_letter(self, channel: BlockingChannel, delivery: Delivery, reason: str) -> None:
        target = dead_letter_queue(delivery.queue)
        headers = dict(delivery.headers)
        headers[DEATH_REASON_HEADER] = reason
        headers[ORIGINAL_QUEUE_HEADER] = delivery.queue

        self._republish(channel, target, delivery, headers)
        channel.basic_ack(delivery_tag=delivery.delivery_tag)
        logger.error(
            f"Dead-lettered message from {delivery.queue}: {reason}",
            extra={"queue": delivery.queue, "dead_letter_queue": target},
        )

    def _republish(self, channel: BlockingChannel, queue_name: str, delivery: Delivery, headers: dict) -> None:
        self.declare_queue(queue_name, channel)
        channel.basic_publish(
            exchange="",
            routing_key=queue_name,
            body=delivery.body,
            properties=pika.BasicProperties(
                content_type=delivery.content_type or JSON_CONTENT_TYPE,
                delivery_mode=pika.DeliveryMode.Persistent,
                headers=headers,
            ),
        )
        increment_counter(messages_published_total, queue=queue_name)
