"""ChatSession: client-side orchestration of one chat view."""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable

from ..attachments import AttachmentProfile
from ..errors import (
    AttachmentServiceError,
    ChatError,
    EmptyMessageError,
    NotAParticipantError,
    SelfConversationError,
    StoreUnavailableError,
)
from ..identity import sender_label
from ..logging_config import get_logger
from ..models import (
    AttachmentReference,
    Conversation,
    ConversationContext,
    Message,
    Participant,
)
from .backend import IChatBackend
from .cache import QueryCache

logger = get_logger(__name__)


class SessionState(str, Enum):
    """States of a chat view."""

    IDLE = "idle"
    RESOLVING_CONVERSATION = "resolving_conversation"
    CONVERSATION_READY = "conversation_ready"
    CONVERSATION_ERROR = "conversation_error"
    LOADING_MESSAGES = "loading_messages"
    MESSAGES_READY = "messages_ready"
    MESSAGES_ERROR = "messages_error"
    SENDING = "sending"


PENDING_STATES = frozenset(
    {
        SessionState.RESOLVING_CONVERSATION,
        SessionState.LOADING_MESSAGES,
        SessionState.SENDING,
    }
)


@dataclass
class Notice:
    """Non-blocking, toast-style notice for the user."""

    title: str
    description: str
    variant: str = "destructive"
    retryable: bool = False


@dataclass(frozen=True)
class OutgoingFile:
    """A file the user attached to a draft."""

    data: bytes
    file_name: str
    mime_type: str
    profile: AttachmentProfile = AttachmentProfile.CHAT_FILE

    @classmethod
    def image(cls, data: bytes, file_name: str, mime_type: str) -> "OutgoingFile":
        return cls(data, file_name, mime_type, AttachmentProfile.CHAT_IMAGE)


@dataclass
class PendingMessage:
    """Optimistic local entry shown while a send is in flight."""

    local_id: str
    sender_id: str
    content: str
    file_name: str | None
    created_at: datetime


Retry = Callable[[], Awaitable[object]]


class ChatSession:
    """State machine behind a chat view.

    Idle -> ResolvingConversation -> ConversationReady | ConversationError;
    ConversationReady -> LoadingMessages -> MessagesReady | MessagesError;
    MessagesReady -> Sending -> MessagesReady.

    Failures never raise to the view: they land in ``notices`` and leave the
    session in its last good state. Retryable failures can be re-run with
    retry(); nothing is retried automatically.
    """

    def __init__(
        self,
        backend: IChatBackend,
        viewer_id: str,
        cache: QueryCache | None = None,
        timeout: float = 10.0,
    ):
        self._backend = backend
        self.viewer_id = viewer_id
        self.cache = cache if cache is not None else QueryCache()
        self._timeout = timeout

        self.state = SessionState.IDLE
        self.conversation: Conversation | None = None
        self.messages: list[Message] = []
        self.pending: list[PendingMessage] = []
        self.profiles: dict[str, Participant] = {}
        self.notices: list[Notice] = []
        self.draft = ""
        self.last_error: ChatError | None = None
        self._retry: Retry | None = None

    @property
    def is_busy(self) -> bool:
        """Whether the view should render a pending indicator."""
        return self.state in PENDING_STATES

    @property
    def can_retry(self) -> bool:
        return self._retry is not None

    @property
    def conversation_id(self) -> str | None:
        return self.conversation.id if self.conversation else None

    def timeline(self) -> list[Message | PendingMessage]:
        """Stored messages followed by optimistic ones."""
        return [*self.messages, *self.pending]

    def label_for(self, sender_id: str) -> str:
        return sender_label(self.profiles.get(sender_id), sender_id, self.viewer_id)

    # Opening

    async def open(
        self,
        target_id: str,
        context: ConversationContext | str | None = None,
        subject: str = "",
    ) -> None:
        """Resolve the conversation with target_id, then load its messages."""
        self.state = SessionState.RESOLVING_CONVERSATION
        try:
            if target_id == self.viewer_id:
                raise SelfConversationError("You cannot start a conversation with yourself")
            conversation_id = await self._call(
                self._backend.resolve_conversation(
                    self.viewer_id, target_id, context, subject
                )
            )
            conversation = await self._call(
                self._backend.get_conversation(conversation_id)
            )
        except ChatError as e:
            self._fail(
                SessionState.CONVERSATION_ERROR,
                e,
                "Failed to start conversation",
                lambda: self.open(target_id, context, subject),
            )
            return

        await self._conversation_ready(conversation)

    async def open_existing(self, conversation_id: str) -> None:
        """Open a known conversation, skipping resolution."""
        self.state = SessionState.RESOLVING_CONVERSATION
        try:
            conversation = await self._call(
                self._backend.get_conversation(conversation_id)
            )
            if not conversation.has_participant(self.viewer_id):
                raise NotAParticipantError(self.viewer_id, conversation_id)
        except ChatError as e:
            self._fail(
                SessionState.CONVERSATION_ERROR,
                e,
                "Failed to open conversation",
                lambda: self.open_existing(conversation_id),
            )
            return

        await self._conversation_ready(conversation)

    async def _conversation_ready(self, conversation: Conversation) -> None:
        if self.conversation is None or self.conversation.id != conversation.id:
            self.messages = []
            self.pending = []
        self.conversation = conversation
        self.state = SessionState.CONVERSATION_READY
        self._retry = None
        logger.debug("Session for %s opened %s", self.viewer_id, conversation.id)

        await self._load_profiles(conversation)
        await self.load_messages()

    async def _load_profiles(self, conversation: Conversation) -> None:
        ids = sorted([conversation.participant_a, conversation.participant_b])
        key = ("profiles", *ids)
        profiles = self.cache.read(key)
        if profiles is None:
            try:
                profiles = await self._call(self._backend.get_profiles(ids))
            except ChatError as e:
                # Labels fall back to the unknown-user name.
                self._notify(e, "Could not load participant names")
                profiles = {}
            else:
                self.cache.write(key, profiles)
        self.profiles = dict(profiles)

    # Messages

    async def load_messages(self) -> None:
        """Load messages, from the cache when present."""
        if self.conversation is None:
            raise RuntimeError("No conversation open")

        key = ("messages", self.conversation.id)
        self.state = SessionState.LOADING_MESSAGES
        messages = self.cache.read(key)
        if messages is None:
            try:
                messages = await self._call(
                    self._backend.list_messages(self.conversation.id)
                )
            except ChatError as e:
                self._fail(
                    SessionState.MESSAGES_ERROR,
                    e,
                    "Failed to load messages",
                    self.load_messages,
                )
                return
            self.cache.write(key, list(messages))

        self.messages = list(messages)
        self.state = SessionState.MESSAGES_READY
        self._retry = None

    async def refresh(self) -> None:
        """Drop cached messages and fetch them again."""
        if self.conversation is None:
            raise RuntimeError("No conversation open")
        self.cache.invalidate(("messages", self.conversation.id))
        self.cache.invalidate(("unread", self.viewer_id))
        await self.load_messages()

    async def poll(self) -> list[Message]:
        """Fetch messages newer than the last one shown and merge them in.

        Returns the newly merged messages. Leaves the state untouched.
        """
        if self.conversation is None or self.state != SessionState.MESSAGES_READY:
            return []

        return await self._catch_up(self._newest(), "Could not check for new messages")

    async def send(self, content: str, file: OutgoingFile | None = None) -> Message | None:
        """Send a message optimistically.

        Returns the stored message, or None when the send failed. On failure
        the draft is kept and no message is added.
        """
        if self.state != SessionState.MESSAGES_READY:
            self.notices.append(
                Notice(
                    title="Not ready to send",
                    description=f"The conversation is {self.state.value.replace('_', ' ')}",
                )
            )
            return None

        self.draft = content
        if not (content or "").strip() and file is None:
            self._notify(EmptyMessageError("Type a message or attach a file"), "Nothing to send")
            return None

        return await self._send(content, file, None)

    async def _send(
        self,
        content: str,
        file: OutgoingFile | None,
        reference: AttachmentReference | None,
    ) -> Message | None:
        conversation_id = self.conversation.id
        pending = PendingMessage(
            local_id=str(uuid.uuid4()),
            sender_id=self.viewer_id,
            content=(content or "").strip(),
            file_name=file.file_name if file else None,
            created_at=datetime.now(timezone.utc),
        )
        self.pending.append(pending)
        self.state = SessionState.SENDING

        try:
            if file is not None and reference is None:
                reference = await self._call(
                    self._backend.upload_attachment(
                        file.data,
                        file.file_name,
                        file.mime_type,
                        file.profile,
                        self.viewer_id,
                    ),
                    AttachmentServiceError,
                )
            message = await self._call(
                self._backend.send_message(
                    conversation_id, self.viewer_id, content, reference
                )
            )
        except ChatError as e:
            self.pending.remove(pending)
            # An upload that succeeded is reused on retry, not sent again.
            self._fail(
                SessionState.MESSAGES_READY,
                e,
                "Failed to send message",
                lambda ref=reference: self._send(content, file, ref),
            )
            return None

        shown_until = self._newest()
        self.pending.remove(pending)
        self._merge([message])
        self.draft = ""
        self.cache.invalidate(("messages", conversation_id))
        self.cache.invalidate_prefix(("conversations",))
        self.cache.invalidate(("unread", self.viewer_id))
        self.state = SessionState.MESSAGES_READY
        self._retry = None

        # Pick up replies that landed while the send was in flight.
        await self._catch_up(shown_until, "Could not refresh messages")
        return message

    async def attachment_url(self, message: Message) -> str | None:
        if message.attachment is None:
            return None
        try:
            return await self._call(self._backend.attachment_url(message.attachment))
        except ChatError as e:
            self._notify(e, "Could not open attachment")
            return None

    # Unread

    async def unread_count(self) -> int:
        """Unread count for the viewer; last known value on failure."""
        key = ("unread", self.viewer_id)
        cached = self.cache.read(key)
        if cached is not None:
            return cached
        try:
            count = await self._call(self._backend.unread_count(self.viewer_id))
        except ChatError as e:
            self._notify(e, "Could not load notifications")
            return 0
        self.cache.write(key, count)
        return count

    async def mark_read(self) -> bool:
        """Clear the viewer's unread state everywhere."""
        try:
            await self._call(self._backend.mark_read(self.viewer_id))
        except ChatError as e:
            self._notify(e, "Could not mark messages as read")
            return False
        self.cache.write(("unread", self.viewer_id), 0)
        return True

    # Failures

    async def retry(self) -> bool:
        """Re-run the last failed retryable operation."""
        if self._retry is None:
            return False
        operation, self._retry = self._retry, None
        await operation()
        return True

    def dismiss_notices(self) -> None:
        self.notices.clear()

    async def _call(self, awaitable, timeout_error: type[ChatError] = StoreUnavailableError):
        try:
            return await asyncio.wait_for(awaitable, self._timeout)
        except asyncio.TimeoutError:
            raise timeout_error(f"Request timed out after {self._timeout}s") from None

    def _notify(self, error: ChatError, title: str) -> None:
        self.last_error = error
        self.notices.append(
            Notice(title=title, description=str(error), retryable=error.retryable)
        )
        logger.warning("%s: %s", title, error)

    def _fail(
        self, state: SessionState, error: ChatError, title: str, retry: Retry
    ) -> None:
        self.state = state
        self._retry = retry if error.retryable else None
        self._notify(error, title)

    def _newest(self) -> datetime | None:
        return self.messages[-1].created_at if self.messages else None

    async def _catch_up(self, after: datetime | None, title: str) -> list[Message]:
        """Merge messages stored after ``after`` and rewrite the message cache."""
        conversation_id = self.conversation.id
        try:
            fresh = await self._call(
                self._backend.list_messages(conversation_id, after=after)
            )
        except ChatError as e:
            self._notify(e, title)
            return []

        known = {m.id for m in self.messages}
        new = [m for m in fresh if m.id not in known]
        self._merge(new)
        self.cache.write(("messages", conversation_id), list(self.messages))
        if any(m.sender_id != self.viewer_id for m in new):
            self.cache.invalidate(("unread", self.viewer_id))
        return new

    def _merge(self, messages: list[Message]) -> None:
        by_id = {m.id: m for m in self.messages}
        for message in messages:
            by_id[message.id] = message
        self.messages = sorted(
            by_id.values(),
            key=lambda m: (m.created_at, m.seq if m.seq is not None else 0),
        )
