"""Pydantic models for ledger event messages."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, field_validator

from fundme.messaging.routing import get_routing_key_for_event


class EventType(str, Enum):
    """Event type enumeration."""
    PROJECT_CREATED = "ProjectCreated"
    DONATION_RECEIVED = "DonationReceived"


class LedgerEventMessage(BaseModel):
    """Event message emitted after a ledger transaction commits.

    Attributes:
        message_type: Always "event" for event messages
        event_type: Type of ledger event
        program_id: Program id the ledger derives addresses under
        address: Address of the entity the event is about
        timestamp: Environment clock at acceptance (Unix epoch)
        event_data: Event parameters
        published_at: Publication time
    """
    message_type: Literal["event"] = "event"
    event_type: Literal["ProjectCreated", "DonationReceived"]
    program_id: str
    address: str
    timestamp: int
    event_data: Dict[str, Any]
    published_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("address", "program_id")
    @classmethod
    def lowercase_hex(cls, v: str) -> str:
        """Ensure hex strings are lowercase."""
        return v.lower() if v else v

    def to_routing_key(self) -> str:
        """Get the routing key for this event."""
        return get_routing_key_for_event(self.event_type)

