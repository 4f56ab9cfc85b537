"""Publisher module for sending ledger events to RabbitMQ."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pika.exceptions import AMQPError

from fundme.config import Config
from fundme.log import get_logger
from fundme.messaging.rabbitmq import RabbitMQConnection, RabbitMQPublisher
from fundme.messaging.schema import EventType, LedgerEventMessage

logger = get_logger(__name__)


class EventPublisher:
    """Publisher for committed ledger events."""

    def __init__(self, config: Config):
        """Initialize event publisher.

        Args:
            config: Configuration object
        """
        self.config = config
        self._connection: Optional[RabbitMQConnection] = None
        self._publisher: Optional[RabbitMQPublisher] = None
        self._events_published = 0

    def connect(self) -> None:
        """Establish connection to RabbitMQ."""
        self._connection = RabbitMQConnection(
            **self.config.get_rabbitmq_connection_params(), confirm_delivery=True
        )
        self._connection.connect()
        self._publisher = RabbitMQPublisher(self._connection, exchange=self.config.rabbitmq_exchange)
        logger.info("Event publisher connected to RabbitMQ")

    def close(self) -> None:
        """Close the connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            self._publisher = None
        logger.info(f"Event publisher closed. Total events published: {self._events_published}")

    def ensure_connected(self) -> None:
        """Ensure publisher is connected."""
        if self._connection is None or self._publisher is None:
            self.connect()

    def publish_event(
        self,
        event_type: str,
        address: str,
        timestamp: int,
        event_data: Dict[str, Any],
    ) -> bool:
        """Publish a ledger event.

        Publishing happens after the ledger transaction has committed, so a
        broker failure is logged and reported, never raised.

        Args:
            event_type: ProjectCreated or DonationReceived
            address: Address of the project or receipt
            timestamp: Environment clock at acceptance
            event_data: Event parameters

        Returns:
            True if published successfully
        """
        message = LedgerEventMessage(
            event_type=event_type,
            program_id=self.config.program_id,
            address=address,
            timestamp=timestamp,
            event_data=event_data,
            published_at=datetime.now(timezone.utc),
        )

        try:
            self.ensure_connected()
            success = self._publisher.publish_event(message)
        except AMQPError as e:
            logger.error(f"Failed to publish {event_type} event for {address}: {e}")
            return False

        if success:
            self._events_published += 1
            logger.debug(f"Published {event_type} event: address={address}")
        else:
            logger.error(f"Failed to publish {event_type} event: address={address}")
        return success

    def publish_project_created(self, address: str, timestamp: int, event_data: Dict[str, Any]) -> bool:
        return self.publish_event(EventType.PROJECT_CREATED.value, address, timestamp, event_data)

    def publish_donation_received(self, address: str, timestamp: int, event_data: Dict[str, Any]) -> bool:
        return self.publish_event(EventType.DONATION_RECEIVED.value, address, timestamp, event_data)

    @property
    def events_published_count(self) -> int:
        """Get the number of events published."""
        return self._events_published


def build_publisher(config: Config) -> Optional[EventPublisher]:
    """Return an EventPublisher when event publishing is enabled."""
    if not config.publish_events:
        return None
    return EventPublisher(config)
