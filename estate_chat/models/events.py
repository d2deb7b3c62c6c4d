"""Activity event models exchanged through the EventBus."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Topic(str, Enum):
    """EventBus topics."""

    CONVERSATION_CREATED = "conversation_created"
    MESSAGE_APPENDED = "message_appended"
    READ_MARKED = "read_marked"


@dataclass
class BusMessage:
    """An event published through the EventBus."""

    id: str
    topic: Topic
    payload: dict  # varies by topic
    source: str  # component that published
    timestamp: datetime
