"""Messaging module for publishing ledger events to RabbitMQ."""

from fundme.messaging.schema import (
    EventType,
    LedgerEventMessage,
)
from fundme.messaging.routing import (
    RoutingKey,
    EXCHANGE_NAME,
    get_routing_key_for_event,
)
from fundme.messaging.rabbitmq import (
    RabbitMQConnection,
    RabbitMQPublisher,
)
from fundme.messaging.publisher import EventPublisher, build_publisher

__all__ = [
    "EventType",
    "LedgerEventMessage",
    "RoutingKey",
    "EXCHANGE_NAME",
    "get_routing_key_for_event",
    "RabbitMQConnection",
    "RabbitMQPublisher",
    "EventPublisher",
    "build_publisher",
]
