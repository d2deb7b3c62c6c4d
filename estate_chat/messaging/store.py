"""MessageStore implementation."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..errors import (
    ConversationNotFoundError,
    EmptyMessageError,
    NotAParticipantError,
)
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import AttachmentReference, BusMessage, Message, Topic
from ..storage import IStorage

logger = get_logger(__name__)


class IMessageStore(Protocol):
    """Append-only, ordered message log per conversation."""

    async def append(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        attachment: AttachmentReference | None = None,
    ) -> Message:
        """Append a message and return it with server-assigned id and timestamp."""
        ...

    async def list(
        self, conversation_id: str, after: datetime | None = None
    ) -> list[Message]:
        """List messages in ascending created_at order."""
        ...

    async def latest(self, conversation_id: str) -> Message | None:
        """Get the most recent message of a conversation."""
        ...


class MessageStore:
    """Validates and appends messages; lists them in conversation order.

    Storage failures surface as StoreUnavailableError. Nothing here retries;
    retry policy belongs to the caller.
    """

    def __init__(self, storage: IStorage, event_bus: IEventBus | None = None):
        self._storage = storage
        self._event_bus = event_bus

    async def append(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        attachment: AttachmentReference | None = None,
    ) -> Message:
        """Append a message and return it with server-assigned id and timestamp."""
        content = (content or "").strip()
        if not content and attachment is None:
            raise EmptyMessageError("Message needs text or an attachment")

        conversation = await self._storage.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        if not conversation.has_participant(sender_id):
            raise NotAParticipantError(sender_id, conversation_id)

        message = await self._storage.append_message(
            Message(
                id=str(uuid.uuid4()),
                conversation_id=conversation_id,
                sender_id=sender_id,
                content=content,
                attachment=attachment,
                created_at=datetime.now(timezone.utc),
            )
        )
        logger.info(
            "Message appended",
            extra={
                "conversation_id": conversation_id,
                "user_id": sender_id,
                "message_id": message.id,
            },
        )

        if self._event_bus:
            await self._event_bus.publish(
                BusMessage(
                    id=str(uuid.uuid4()),
                    topic=Topic.MESSAGE_APPENDED,
                    payload={
                        "conversation_id": conversation_id,
                        "message_id": message.id,
                        "sender_id": sender_id,
                        "recipient_id": conversation.other_participant(sender_id),
                        "has_attachment": attachment is not None,
                    },
                    source="message_store",
                    timestamp=message.created_at,
                )
            )

        return message

    async def list(
        self, conversation_id: str, after: datetime | None = None
    ) -> list[Message]:
        """List messages in ascending created_at order."""
        return await self._storage.get_messages(conversation_id, after=after)

    async def latest(self, conversation_id: str) -> Message | None:
        """Get the most recent message of a conversation."""
        return await self._storage.get_latest_message(conversation_id)
