"""ConversationResolver implementation."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..errors import ConversationNotFoundError, SelfConversationError
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import (
    BusMessage,
    Conversation,
    ConversationContext,
    PairKey,
    Topic,
)
from ..storage import IStorage

logger = get_logger(__name__)


class IConversationResolver(Protocol):
    """Find-or-create of the single conversation for a (pair, context)."""

    async def resolve(
        self,
        participant_a: str,
        participant_b: str,
        context: ConversationContext | str | None = None,
        subject: str = "",
    ) -> str:
        """Return the canonical conversation id, creating it if absent."""
        ...

    async def get(self, conversation_id: str) -> Conversation:
        """Get a conversation or raise ConversationNotFoundError."""
        ...

    async def find(
        self,
        participant_a: str,
        participant_b: str,
        context: ConversationContext | str | None = None,
    ) -> Conversation | None:
        """Look up a conversation without creating it."""
        ...

    async def list_for_user(self, user_id: str) -> list[Conversation]:
        """List a user's conversations, most recently active first."""
        ...

    async def list_all(self) -> list[Conversation]:
        """List every conversation, most recently active first."""
        ...


class ConversationResolver:
    """Resolves participant pairs to conversations.

    The pair is unordered: resolve(A, B, ctx) and resolve(B, A, ctx) yield the
    same id. Creation relies on the store's atomic create-if-absent, so
    concurrent callers for the same (pair, context) all observe one row.
    """

    def __init__(self, storage: IStorage, event_bus: IEventBus | None = None):
        self._storage = storage
        self._event_bus = event_bus

    async def resolve(
        self,
        participant_a: str,
        participant_b: str,
        context: ConversationContext | str | None = None,
        subject: str = "",
    ) -> str:
        """Return the canonical conversation id, creating it if absent."""
        if participant_a == participant_b:
            raise SelfConversationError(
                f"Cannot start a conversation between {participant_a} and themselves"
            )
        ctx = ConversationContext.parse(context)
        pair = PairKey.of(participant_a, participant_b)

        now = datetime.now(timezone.utc)
        candidate = Conversation(
            id=str(uuid.uuid4()),
            participant_a=pair.first,
            participant_b=pair.second,
            context=ctx,
            subject=subject,
            created_at=now,
            last_message_at=now,
        )
        conversation, created = await self._storage.insert_conversation_if_absent(
            candidate
        )

        if created:
            logger.info(
                "Conversation created for %s (%s)",
                pair,
                ctx,
                extra={"conversation_id": conversation.id},
            )
            await self._publish(conversation)
        else:
            logger.debug("Conversation %s reused for %s (%s)", conversation.id, pair, ctx)

        return conversation.id

    async def get(self, conversation_id: str) -> Conversation:
        """Get a conversation or raise ConversationNotFoundError."""
        conversation = await self._storage.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    async def find(
        self,
        participant_a: str,
        participant_b: str,
        context: ConversationContext | str | None = None,
    ) -> Conversation | None:
        """Look up a conversation without creating it."""
        if participant_a == participant_b:
            return None
        return await self._storage.find_conversation(
            PairKey.of(participant_a, participant_b),
            ConversationContext.parse(context),
        )

    async def list_for_user(self, user_id: str) -> list[Conversation]:
        """List a user's conversations, most recently active first."""
        return await self._storage.list_conversations(user_id)

    async def list_all(self) -> list[Conversation]:
        """Every conversation, for moderation. Callers gate access."""
        return await self._storage.list_all_conversations()

    async def _publish(self, conversation: Conversation) -> None:
        if not self._event_bus:
            return
        await self._event_bus.publish(
            BusMessage(
                id=str(uuid.uuid4()),
                topic=Topic.CONVERSATION_CREATED,
                payload={
                    "conversation_id": conversation.id,
                    "participants": [
                        conversation.participant_a,
                        conversation.participant_b,
                    ],
                    "context": str(conversation.context),
                    "subject": conversation.subject,
                },
                source="conversation_resolver",
                timestamp=datetime.now(timezone.utc),
            )
        )
