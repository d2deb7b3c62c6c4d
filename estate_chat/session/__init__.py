"""Client-side chat session layer."""

from .backend import REQUEST_SUBJECT, SUPPORT_SUBJECT, ChatService, IChatBackend
from .cache import QueryCache
from .controller import (
    ChatSession,
    Notice,
    OutgoingFile,
    PendingMessage,
    SessionState,
)
from .http_client import HttpChatClient
from .support import SupportChatFlow, SupportFlowState

__all__ = [
    "REQUEST_SUBJECT",
    "SUPPORT_SUBJECT",
    "ChatService",
    "IChatBackend",
    "QueryCache",
    "ChatSession",
    "Notice",
    "OutgoingFile",
    "PendingMessage",
    "SessionState",
    "HttpChatClient",
    "SupportChatFlow",
    "SupportFlowState",
]
