"""Configuration management for the fundme ledger."""

import os
import re
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables from .env file if present
load_dotenv()

DEFAULT_PROGRAM_ID = "0x5acf1a9e95dd4b5ffa6d3c1e8e4b24a1b7c9f3d2"

_HEX_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Ledger configuration."""

    # Required
    db_url: str

    # Ledger settings
    program_id: str = DEFAULT_PROGRAM_ID
    log_level: str = "INFO"
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # Event publishing
    publish_events: bool = False
    rabbitmq_host: str = "localhost"
    rabbitmq_port: int = 5672
    rabbitmq_user: str = "guest"
    rabbitmq_password: str = "guest"
    rabbitmq_vhost: str = "/"
    rabbitmq_exchange: str = "ledger_events"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_url = os.getenv("DB_URL")
        if not db_url:
            raise ValueError("DB_URL environment variable is required")

        return cls(
            db_url=db_url,
            # Ledger settings
            program_id=os.getenv("PROGRAM_ID", DEFAULT_PROGRAM_ID).lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
            db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
            # Event publishing
            publish_events=_env_bool("PUBLISH_EVENTS"),
            rabbitmq_host=os.getenv("RABBITMQ_HOST", "localhost"),
            rabbitmq_port=int(os.getenv("RABBITMQ_PORT", "5672")),
            rabbitmq_user=os.getenv("RABBITMQ_USER", "guest"),
            rabbitmq_password=os.getenv("RABBITMQ_PASSWORD", "guest"),
            rabbitmq_vhost=os.getenv("RABBITMQ_VHOST", "/"),
            rabbitmq_exchange=os.getenv("RABBITMQ_EXCHANGE", "ledger_events"),
        )

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.db_url:
            raise ValueError("db_url is required")
        if not _HEX_ADDRESS.match(self.program_id or ""):
            raise ValueError("program_id must be a 0x-prefixed 20-byte hex string")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        if self.db_pool_size <= 0:
            raise ValueError("db_pool_size must be > 0")
        if self.db_max_overflow < 0:
            raise ValueError("db_max_overflow must be >= 0")
        if self.rabbitmq_port <= 0:
            raise ValueError("rabbitmq_port must be > 0")
        if self.publish_events and not self.rabbitmq_exchange:
            raise ValueError("rabbitmq_exchange is required when publish_events is enabled")

    def get_rabbitmq_connection_params(self) -> dict:
        """Get RabbitMQ connection parameters as a dictionary."""
        return {
            "host": self.rabbitmq_host,
            "port": self.rabbitmq_port,
            "user": self.rabbitmq_user,
            "password": self.rabbitmq_password,
            "vhost": self.rabbitmq_vhost,
        }
