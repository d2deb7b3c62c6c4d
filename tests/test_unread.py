"""Tests for UnreadTracker."""

import pytest

from estate_chat.errors import ConversationNotFoundError, NotAParticipantError
from estate_chat.models import BusMessage, Topic


class TestUnreadCount:
    """Tests for unread counting."""

    async def test_never_read_sees_everything(self, resolver, message_store, unread):
        """Test that a user with no marker sees all incoming messages as unread."""
        first = await resolver.resolve("u1", "u2")
        second = await resolver.resolve("u1", "u3")
        await message_store.append(first, "u2", "hi")
        await message_store.append(second, "u3", "hello")
        await message_store.append(second, "u1", "my own message")

        assert await unread.unread_count("u1") == 2
        assert await unread.unread_by_conversation("u1") == {first: 1, second: 1}

    async def test_no_conversations(self, unread):
        assert await unread.unread_count("nobody") == 0

    async def test_mark_read_clears_all(self, resolver, message_store, unread):
        conversation_id = await resolver.resolve("u1", "u2")
        await message_store.append(conversation_id, "u2", "one")
        await message_store.append(conversation_id, "u2", "two")

        await unread.mark_read("u1")

        assert await unread.unread_count("u1") == 0
        # The sender's own count is untouched.
        assert await unread.unread_count("u2") == 0

    async def test_new_messages_after_mark_read(self, resolver, message_store, unread):
        conversation_id = await resolver.resolve("u1", "u2")
        await message_store.append(conversation_id, "u2", "before")
        await unread.mark_read("u1")
        await message_store.append(conversation_id, "u2", "after")

        assert await unread.unread_count("u1") == 1

    async def test_mark_read_is_idempotent(self, resolver, message_store, unread):
        conversation_id = await resolver.resolve("u1", "u2")
        await message_store.append(conversation_id, "u2", "hi")
        await unread.mark_read("u1")
        await unread.mark_read("u1")
        assert await unread.unread_count("u1") == 0


class TestConversationMarkers:
    """Tests for per-conversation read markers."""

    async def test_mark_one_conversation(self, resolver, message_store, unread):
        first = await resolver.resolve("u1", "u2")
        second = await resolver.resolve("u1", "u3")
        await message_store.append(first, "u2", "hi")
        await message_store.append(second, "u3", "hello")

        await unread.mark_conversation_read("u1", first)

        assert await unread.unread_by_conversation("u1") == {second: 1}

    async def test_outsider_cannot_mark(self, resolver, unread):
        conversation_id = await resolver.resolve("u1", "u2")
        with pytest.raises(NotAParticipantError):
            await unread.mark_conversation_read("u3", conversation_id)

    async def test_unknown_conversation(self, unread):
        with pytest.raises(ConversationNotFoundError):
            await unread.mark_conversation_read("u1", "missing")

    async def test_publishes_read_marked(self, unread, event_bus):
        received: list[BusMessage] = []

        async def handler(message: BusMessage):
            received.append(message)

        event_bus.subscribe(Topic.READ_MARKED, handler)
        await unread.mark_read("u1")

        assert len(received) == 1
        assert received[0].payload["user_id"] == "u1"
        assert received[0].payload["conversation_id"] is None
