"""Estate Chat: conversations and messaging for a property-listing app."""

from .app import Application, IApplication
from .attachments import AttachmentProfile, AttachmentService, UploadConstraints
from .conversations import ConversationResolver, IConversationResolver
from .event_bus import EventBus, IEventBus
from .identity import ProfileDirectory, display_name, sender_label
from .messaging import IMessageStore, MessageStore
from .models import (
    AttachmentReference,
    BusMessage,
    Conversation,
    ConversationContext,
    Message,
    Participant,
    Role,
    Topic,
    TraceEvent,
)
from .session import (
    ChatService,
    ChatSession,
    HttpChatClient,
    IChatBackend,
    QueryCache,
    SessionState,
    SupportChatFlow,
    SupportFlowState,
)
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .unread import IUnreadTracker, UnreadTracker

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Role",
    "Participant",
    "ConversationContext",
    "Conversation",
    "AttachmentReference",
    "Message",
    "BusMessage",
    "Topic",
    "TraceEvent",
    # Components
    "IStorage",
    "Storage",
    "IEventBus",
    "EventBus",
    "ITracker",
    "Tracker",
    "IConversationResolver",
    "ConversationResolver",
    "IMessageStore",
    "MessageStore",
    "AttachmentProfile",
    "AttachmentService",
    "UploadConstraints",
    "IUnreadTracker",
    "UnreadTracker",
    "ProfileDirectory",
    "display_name",
    "sender_label",
    # Session
    "IChatBackend",
    "ChatService",
    "HttpChatClient",
    "QueryCache",
    "ChatSession",
    "SessionState",
    "SupportChatFlow",
    "SupportFlowState",
]
