"""Build the ledger services from configuration."""

from dataclasses import dataclass
from typing import Optional

from fundme.config import Config
from fundme.log import get_logger
from fundme.messaging.publisher import EventPublisher, build_publisher
from fundme.runtime.environment import ExecutionEnvironment
from fundme.services.ledger import DonationLedger
from fundme.services.reconciler import Reconciler
from fundme.services.registry import ProjectRegistry

logger = get_logger(__name__)


@dataclass
class LedgerServices:
    """Registry, ledger and reconciler sharing one environment and publisher."""

    env: ExecutionEnvironment
    registry: ProjectRegistry
    ledger: DonationLedger
    reconciler: Reconciler
    publisher: Optional[EventPublisher] = None

    def close(self) -> None:
        if self.publisher is not None:
            self.publisher.close()


def build_services(config: Config, clock=None) -> LedgerServices:
    """Wire the ledger services for ``config``.

    Events are published only when ``config.publish_events`` is set. The
    database must already be initialised with ``init_db(config)``.

    Args:
        config: Validated configuration
        clock: Optional clock; defaults to the system clock
    """
    env = ExecutionEnvironment(config, clock=clock)
    publisher = build_publisher(config)
    if publisher is not None:
        logger.info(f"Publishing ledger events to exchange {config.rabbitmq_exchange}")

    return LedgerServices(
        env=env,
        registry=ProjectRegistry(env, publisher=publisher),
        ledger=DonationLedger(env, publisher=publisher),
        reconciler=Reconciler(env),
        publisher=publisher,
    )
