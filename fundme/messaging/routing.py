"""Routing key constants and helpers for RabbitMQ."""

from enum import Enum

# Exchange configuration
EXCHANGE_NAME = "ledger_events"
EXCHANGE_TYPE = "topic"


class RoutingKey(str, Enum):
    """Routing key enumeration."""
    PROJECT_CREATED = "event.project_created"
    DONATION_RECEIVED = "event.donation_received"


def get_routing_key_for_event(event_type: str) -> str:
    """Get the routing key for a given event type.

    Args:
        event_type: Event type string (e.g., "DonationReceived")

    Returns:
        Routing key string
    """
    routing_map = {
        "ProjectCreated": RoutingKey.PROJECT_CREATED.value,
        "DonationReceived": RoutingKey.DONATION_RECEIVED.value,
    }
    return routing_map.get(event_type, "event.unknown")
