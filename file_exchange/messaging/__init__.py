"""
RabbitMQ publish/consume client.
"""

from .broker import Delivery, Disposition, Handler, HandlerResult, MessageBroker
from .connection import BrokerConnectionManager
from .serializer import JsonMessageSerializer

__all__ = [
    "BrokerConnectionManager",
    "Delivery",
    "Disposition",
    "Handler",
    "HandlerResult",
    "JsonMessageSerializer",
    "MessageBroker",
]
