"""RabbitMQ channel used to publish committed ledger events.

Events go out after the ledger transaction has committed, so nothing here
sleeps or loops on the broker. A failed publish reopens the channel once
and then reports failure to the caller.
"""

from typing import Optional

import pika
from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPChannelError, AMQPConnectionError

from fundme.log import get_logger
from fundme.messaging.routing import EXCHANGE_NAME, EXCHANGE_TYPE
from fundme.messaging.schema import LedgerEventMessage

logger = get_logger(__name__)

# Persistent, so events survive a broker restart once routed
EVENT_PROPERTIES = pika.BasicProperties(content_type="application/json", delivery_mode=2)


class RabbitMQConnection:
    """Single blocking connection and channel, opened lazily."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5672,
        user: str = "guest",
        password: str = "guest",
        vhost: str = "/",
        socket_timeout: float = 5.0,
        confirm_delivery: bool = False,
    ):
        """Initialize RabbitMQ connection.

        Args:
            host: RabbitMQ host
            port: RabbitMQ port
            user: RabbitMQ username
            password: RabbitMQ password
            vhost: Virtual host
            socket_timeout: Upper bound in seconds for connecting and blocking calls
            confirm_delivery: Put every opened channel in publisher-confirm mode
        """
        self.params = pika.ConnectionParameters(
            host=host,
            port=port,
            virtual_host=vhost,
            credentials=pika.PlainCredentials(user, password),
            connection_attempts=1,
            socket_timeout=socket_timeout,
            blocked_connection_timeout=socket_timeout,
        )
        self.confirm_delivery = confirm_delivery

        self._connection: Optional[pika.BlockingConnection] = None
        self._channel: Optional[BlockingChannel] = None

    @property
    def is_open(self) -> bool:
        return (
            self._connection is not None
            and self._connection.is_open
            and self._channel is not None
            and self._channel.is_open
        )

    def connect(self) -> None:
        """Open a fresh connection and channel, dropping any previous one.

        Raises:
            AMQPConnectionError: If the broker is unreachable
        """
        self.close()
        self._connection = pika.BlockingConnection(self.params)
        self._channel = self._connection.channel()
        # Confirm mode is per channel, so it is reapplied on every reopen
        if self.confirm_delivery:
            self._channel.confirm_delivery()
        logger.info(f"Connected to RabbitMQ at {self.params.host}:{self.params.port}")

    @property
    def channel(self) -> BlockingChannel:
        if not self.is_open:
            self.connect()
        return self._channel

    def close(self) -> None:
        connection, self._connection, self._channel = self._connection, None, None
        if connection is None or not connection.is_open:
            return
        try:
            connection.close()
            logger.info("RabbitMQ connection closed")
        except AMQPConnectionError as e:
            logger.warning(f"Error closing RabbitMQ connection: {e}")

    def declare_exchange(self, exchange: str = EXCHANGE_NAME) -> None:
        """Declare the durable topic exchange ledger events are published to."""
        self.channel.exchange_declare(exchange=exchange, exchange_type=EXCHANGE_TYPE, durable=True)
        logger.info(f"Declared exchange: {exchange}")


class RabbitMQPublisher:
    """Publishes ledger events to one exchange, routed by event type."""

    def __init__(self, connection: RabbitMQConnection, exchange: str = EXCHANGE_NAME):
        self.connection = connection
        self.exchange = exchange

    def publish_event(self, message: LedgerEventMessage) -> bool:
        """Publish ``message`` under its event routing key.

        Returns:
            True if the broker accepted the message
        """
        routing_key = message.to_routing_key()
        body = message.model_dump_json()

        for reopened in (False, True):
            try:
                self.connection.channel.basic_publish(
                    exchange=self.exchange,
                    routing_key=routing_key,
                    body=body,
                    properties=EVENT_PROPERTIES,
                )
                logger.debug(f"Published {message.event_type} to {routing_key}")
                return True
            except (AMQPConnectionError, AMQPChannelError) as e:
                logger.warning(f"Publish of {message.event_type} failed: {e}")
                if reopened:
                    break
                self.connection.close()

        logger.error(f"Dropped {message.event_type} event for {message.address} after reopening the channel")
        return False
