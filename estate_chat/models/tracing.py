"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single recorded activity event."""

    id: str
    event_type: str  # e.g. "conversation_created", "message_appended"
    actor: str  # component or user that caused the event
    data: dict
    timestamp: datetime
