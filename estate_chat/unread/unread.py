"""UnreadTracker implementation."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..errors import ConversationNotFoundError, NotAParticipantError
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import BusMessage, Topic
from ..storage import IStorage

logger = get_logger(__name__)


class IUnreadTracker(Protocol):
    """Per-user unread state across conversations."""

    async def unread_count(self, user_id: str) -> int:
        """Messages from other participants after the user's read marker."""
        ...

    async def mark_read(self, user_id: str) -> None:
        """Clear unread state for all of the user's conversations."""
        ...


class UnreadTracker:
    """Derives unread counts from the message log and per-user read markers.

    The default contract is a single global marker per user: mark_read()
    clears every conversation at once. Per-conversation markers refine it;
    the effective marker for a conversation is the later of the two.
    """

    def __init__(self, storage: IStorage, event_bus: IEventBus | None = None):
        self._storage = storage
        self._event_bus = event_bus

    async def unread_count(self, user_id: str) -> int:
        """Messages from other participants after the user's read marker."""
        counts = await self._storage.count_unread(user_id)
        return sum(counts.values())

    async def unread_by_conversation(self, user_id: str) -> dict[str, int]:
        """Unread counts keyed by conversation id (non-zero entries only)."""
        return await self._storage.count_unread(user_id)

    async def mark_read(self, user_id: str) -> None:
        """Clear unread state for all of the user's conversations."""
        marker = await self._storage.advance_read_marker(
            user_id, datetime.now(timezone.utc)
        )
        logger.debug(
            "Read marker advanced to %s", marker.isoformat(), extra={"user_id": user_id}
        )
        await self._publish(user_id, None, marker)

    async def mark_conversation_read(self, user_id: str, conversation_id: str) -> None:
        """Clear unread state for one conversation."""
        conversation = await self._storage.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        if not conversation.has_participant(user_id):
            raise NotAParticipantError(user_id, conversation_id)

        marker = await self._storage.advance_conversation_read_marker(
            user_id, conversation_id, datetime.now(timezone.utc)
        )
        await self._publish(user_id, conversation_id, marker)

    async def _publish(
        self, user_id: str, conversation_id: str | None, marker: datetime
    ) -> None:
        if not self._event_bus:
            return
        await self._event_bus.publish(
            BusMessage(
                id=str(uuid.uuid4()),
                topic=Topic.READ_MARKED,
                payload={
                    "user_id": user_id,
                    "conversation_id": conversation_id,
                    "marker": marker.isoformat(),
                },
                source="unread_tracker",
                timestamp=marker,
            )
        )
