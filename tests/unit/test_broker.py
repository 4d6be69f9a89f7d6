"""
Unit tests for the message broker client, using a mocked pika channel.
"""

import threading
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from pika.exceptions import AMQPConnectionError, AMQPError

from file_exchange.config import BrokerSettings, RetrySettings
from file_exchange.core.errors import BrokerUnavailable, MessageDeserializationError
from file_exchange.core.models import FileArrivalEvent
from file_exchange.messaging import (
    BrokerConnectionManager,
    Delivery,
    Disposition,
    HandlerResult,
    JsonMessageSerializer,
    MessageBroker,
)


@pytest.fixture
def channel() -> MagicMock:
    return MagicMock()


@pytest.fixture
def connection(channel) -> MagicMock:
    manager = MagicMock(spec=BrokerConnectionManager)
    manager.declared_queues = set()
    manager.channel.return_value = channel
    return manager


@pytest.fixture
def broker(connection) -> MessageBroker:
    return MessageBroker(connection, retry=RetrySettings(max_attempts=3, backoff_seconds=0))


def delivery(headers: dict | None = None, tag: int = 7) -> Delivery:
    return Delivery(
        queue="file.received",
        body=b'{"fileId": "f1"}',
        delivery_tag=tag,
        content_type="application/json",
        headers=headers or {},
    )


def published(channel: MagicMock) -> list[tuple[str, dict]]:
    """(routing key, headers) of every basic_publish call"""
    return [
        (c.kwargs["routing_key"], c.kwargs["properties"].headers or {})
        for c in channel.basic_publish.call_args_list
    ]


class TestPublish:
    """Tests for MessageBroker.publish"""

    def test_publishes_persistent_json(self, broker, channel):
        event = FileArrivalEvent(file_id="f1", vendor_id="acme", storage_path="/tmp/f1.csv")

        broker.publish("file.received", event)

        channel.queue_declare.assert_called_once_with(
            queue="file.received", durable=True, exclusive=False, auto_delete=False
        )
        kwargs = channel.basic_publish.call_args.kwargs
        assert kwargs["exchange"] == ""
        assert kwargs["routing_key"] == "file.received"
        assert kwargs["properties"].delivery_mode == 2
        assert kwargs["properties"].content_type == "application/json"
        assert b'"vendorId":"acme"' in kwargs["body"]

    def test_declares_each_queue_once(self, broker, channel):
        broker.publish("file.received", {"a": 1})
        broker.publish("file.received", {"a": 2})

        assert channel.queue_declare.call_count == 1
        assert channel.basic_publish.call_count == 2

    def test_raw_bytes_are_sent_unchanged(self, broker, channel):
        broker.publish("raw", b"\x00\x01", content_type="application/octet-stream")
        assert channel.basic_publish.call_args.kwargs["body"] == b"\x00\x01"

    def test_broker_error_resets_connection(self, broker, connection, channel):
        channel.basic_publish.side_effect = AMQPError("nack")

        with pytest.raises(BrokerUnavailable, match="Publish to 'file.received' failed"):
            broker.publish("file.received", {"a": 1})

        connection.reset.assert_called_once()


class TestSettle:
    """Tests for applying handler results"""

    def test_ack(self, broker, channel):
        assert broker.settle(channel, delivery(), HandlerResult.ack()) is Disposition.ACK

        channel.basic_ack.assert_called_once_with(delivery_tag=7)
        channel.basic_publish.assert_not_called()

    def test_dead_letter_moves_message(self, broker, channel):
        disposition = broker.settle(channel, delivery(), HandlerResult.dead_letter("unknown vendor"))

        assert disposition is Disposition.DEAD_LETTER
        [(queue, headers)] = published(channel)
        assert queue == "file.received.dead-letter"
        assert headers["x-death-reason"] == "unknown vendor"
        assert headers["x-original-queue"] == "file.received"
        channel.basic_ack.assert_called_once_with(delivery_tag=7)

    def test_requeue_increments_attempt(self, broker, channel):
        disposition = broker.settle(channel, delivery(), HandlerResult.requeue("archive down"))

        assert disposition is Disposition.REQUEUE
        [(queue, headers)] = published(channel)
        assert queue == "file.received"
        assert headers["x-attempt"] == 2
        assert "x-notified" not in headers
        channel.basic_ack.assert_called_once_with(delivery_tag=7)

    def test_requeue_carries_notified_flag(self, broker, channel):
        broker.settle(channel, delivery({"x-attempt": 2}), HandlerResult.requeue("archive down", notified=True))

        [(_, headers)] = published(channel)
        assert headers == {"x-attempt": 3, "x-notified": True}

    def test_requeue_past_limit_dead_letters(self, broker, channel):
        disposition = broker.settle(channel, delivery({"x-attempt": 3}), HandlerResult.requeue("still down"))

        assert disposition is Disposition.DEAD_LETTER
        [(queue, headers)] = published(channel)
        assert queue == "file.received.dead-letter"
        assert "retry limit of 3 attempts reached" in headers["x-death-reason"]

    def test_uncounted_requeue_nacks(self, broker, channel):
        result = HandlerResult.requeue("shutting down", count_attempt=False)

        assert broker.settle(channel, delivery(), result) is Disposition.REQUEUE

        channel.basic_nack.assert_called_once_with(delivery_tag=7, requeue=True)
        channel.basic_publish.assert_not_called()

    def test_uncounted_requeue_after_notification_republishes(self, broker, channel):
        result = HandlerResult.requeue("shutting down", notified=True, count_attempt=False)

        broker.settle(channel, delivery({"x-attempt": 2}), result)

        [(queue, headers)] = published(channel)
        assert queue == "file.received"
        assert headers == {"x-attempt": 2, "x-notified": True}
        channel.basic_nack.assert_not_called()

    def test_backoff_waits_on_stop_event(self, connection, channel):
        broker = MessageBroker(connection, retry=RetrySettings(backoff_seconds=4, backoff_max_seconds=10))
        stop_event = MagicMock(spec=threading.Event)

        broker.settle(channel, delivery({"x-attempt": 3}), HandlerResult.requeue("down"), stop_event)

        stop_event.wait.assert_called_once_with(10)


class TestConsume:
    """Tests for the consume loop"""

    def _messages(self, channel, *bodies, headers=None):
        method_frames = [
            (SimpleNamespace(delivery_tag=i + 1, redelivered=False),
             SimpleNamespace(content_type="application/json", headers=headers),
             body)
            for i, body in enumerate(bodies)
        ]
        channel.consume.return_value = iter(method_frames + [(None, None, None)])

    def test_each_message_is_settled_by_handler_result(self, broker, channel):
        self._messages(channel, b"one", b"two")
        stop_event = threading.Event()
        seen = []

        def handler(d: Delivery) -> HandlerResult:
            seen.append(d.body)
            if d.body == b"two":
                stop_event.set()
                return HandlerResult.dead_letter("bad")
            return HandlerResult.ack()

        broker.consume("file.received", handler, stop_event)

        assert seen == [b"one", b"two"]
        channel.basic_qos.assert_called_once_with(prefetch_count=1)
        channel.basic_ack.assert_any_call(delivery_tag=1)
        assert published(channel)[0][0] == "file.received.dead-letter"
        channel.cancel.assert_called_once()

    def test_handler_exception_is_requeued(self, broker, channel):
        self._messages(channel, b"boom")
        stop_event = threading.Event()

        def handler(d: Delivery) -> HandlerResult:
            stop_event.set()
            raise ValueError("unexpected")

        broker.consume("file.received", handler, stop_event)

        [(queue, headers)] = published(channel)
        assert queue == "file.received"
        assert headers["x-attempt"] == 2

    def test_message_after_stop_is_returned_unprocessed(self, broker, channel):
        self._messages(channel, b"late")
        stop_event = threading.Event()
        stop_event.set()
        handler = MagicMock()

        broker.consume("file.received", handler, stop_event)

        handler.assert_not_called()
        channel.basic_nack.assert_called_once_with(delivery_tag=1, requeue=True)

    def test_connection_loss_raises_broker_unavailable(self, broker, connection, channel):
        channel.consume.side_effect = AMQPConnectionError("gone")

        with pytest.raises(BrokerUnavailable):
            broker.consume("file.received", MagicMock(), threading.Event())

        connection.reset.assert_called_once()


class TestDelivery:
    """Tests for delivery header accessors"""

    @pytest.mark.parametrize(
        "headers, attempt",
        [({}, 1), ({"x-attempt": 4}, 4), ({"x-attempt": "2"}, 2), ({"x-attempt": "junk"}, 1), ({"x-attempt": 0}, 1)],
    )
    def test_attempt(self, headers, attempt):
        assert delivery(headers).attempt == attempt

    @pytest.mark.parametrize("value, notified", [(True, True), ("true", True), (b"True", True), ("no", False)])
    def test_notified(self, value, notified):
        assert delivery({"x-notified": value}).notified is notified


class TestConnectionManager:
    """Tests for BrokerConnectionManager"""

    def test_connects_lazily_with_confirms(self):
        pika_connection = MagicMock()
        factory = MagicMock(return_value=pika_connection)
        manager = BrokerConnectionManager(BrokerSettings(host="mq.internal"), connection_factory=factory)

        factory.assert_not_called()
        channel = manager.channel()

        assert channel is pika_connection.channel.return_value
        channel.confirm_delivery.assert_called_once()
        assert factory.call_args.args[0].host == "mq.internal"

    def test_reconnects_after_reset(self):
        factory = MagicMock(side_effect=lambda params: MagicMock())
        manager = BrokerConnectionManager(connection_factory=factory)

        manager.channel()
        manager.reset()
        manager.channel()

        assert factory.call_count == 2

    def test_unreachable_broker(self):
        factory = MagicMock(side_effect=AMQPConnectionError("refused"))
        manager = BrokerConnectionManager(connection_factory=factory)

        with pytest.raises(BrokerUnavailable, match="Cannot connect to broker"):
            manager.channel()
        assert manager.check_connectivity() is False


class TestSerializer:
    """Tests for JsonMessageSerializer"""

    def test_round_trip(self):
        serializer = JsonMessageSerializer()
        event = FileArrivalEvent(file_id="f1", vendor_id="acme", storage_path="/tmp/f1.csv")

        assert serializer.deserialize(serializer.serialize(event), FileArrivalEvent) == event

    @pytest.mark.parametrize("body", [b"not json", b"{}", b'{"fileId": "f1"}'])
    def test_invalid_payload(self, body):
        with pytest.raises(MessageDeserializationError):
            JsonMessageSerializer().deserialize(body, FileArrivalEvent)
