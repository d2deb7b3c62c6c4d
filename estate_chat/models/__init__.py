"""Core data models for estate_chat."""

from .conversations import (
    ContextKind,
    Conversation,
    ConversationContext,
    PairKey,
    Participant,
    Role,
)
from .events import BusMessage, Topic
from .messages import AttachmentReference, Message
from .tracing import TraceEvent

__all__ = [
    # Conversations
    "Role",
    "Participant",
    "ContextKind",
    "ConversationContext",
    "PairKey",
    "Conversation",
    # Messages
    "AttachmentReference",
    "Message",
    # Events
    "BusMessage",
    "Topic",
    # Tracing
    "TraceEvent",
]
