"""Tests for MessageStore."""

import asyncio

import pytest

from estate_chat.attachments import AttachmentProfile
from estate_chat.errors import (
    ConversationNotFoundError,
    EmptyMessageError,
    NotAParticipantError,
)
from estate_chat.models import AttachmentReference, BusMessage, Topic


@pytest.fixture
async def conversation_id(resolver):
    return await resolver.resolve("u1", "u2")


class TestAppend:
    """Tests for MessageStore.append()."""

    async def test_append_strips_content(self, message_store, conversation_id):
        message = await message_store.append(conversation_id, "u1", "  hello there \n")
        assert message.content == "hello there"
        assert message.sender_id == "u1"
        assert message.created_at.tzinfo is not None

    async def test_empty_message_rejected(self, message_store, conversation_id):
        """Test that whitespace-only content without attachment is rejected."""
        with pytest.raises(EmptyMessageError):
            await message_store.append(conversation_id, "u1", "   ")
        assert await message_store.list(conversation_id) == []

    async def test_attachment_only_message_allowed(self, message_store, conversation_id):
        reference = AttachmentReference("u1/1-x.pdf", "lease.pdf", "application/pdf", 2048)
        message = await message_store.append(conversation_id, "u1", "", reference)
        assert message.content == ""
        assert message.attachment == reference

    async def test_unknown_conversation(self, message_store):
        with pytest.raises(ConversationNotFoundError):
            await message_store.append("missing", "u1", "hi")

    async def test_outsider_cannot_post(self, message_store, conversation_id):
        """Test that only the two participants may append."""
        with pytest.raises(NotAParticipantError):
            await message_store.append(conversation_id, "u3", "hi")

    async def test_publishes_message_appended(self, message_store, event_bus, conversation_id):
        received: list[BusMessage] = []

        async def handler(message: BusMessage):
            received.append(message)

        event_bus.subscribe(Topic.MESSAGE_APPENDED, handler)
        message = await message_store.append(conversation_id, "u2", "ping")

        assert len(received) == 1
        assert received[0].payload["message_id"] == message.id
        assert received[0].payload["recipient_id"] == "u1"


class TestOrdering:
    """Tests for message ordering."""

    async def test_list_in_append_order(self, message_store, conversation_id):
        sent = []
        for i in range(5):
            sender = "u1" if i % 2 else "u2"
            sent.append(await message_store.append(conversation_id, sender, f"m{i}"))

        listed = await message_store.list(conversation_id)
        assert [m.id for m in listed] == [m.id for m in sent]
        assert all(a.created_at < b.created_at for a, b in zip(listed, listed[1:]))

    async def test_concurrent_appends_totally_ordered(self, message_store, conversation_id):
        """Test that concurrent appends from both senders get distinct, ordered times."""
        await asyncio.gather(
            *[message_store.append(conversation_id, "u1", f"a{i}") for i in range(10)],
            *[message_store.append(conversation_id, "u2", f"b{i}") for i in range(10)],
        )
        listed = await message_store.list(conversation_id)
        assert len(listed) == 20
        timestamps = [m.created_at for m in listed]
        assert timestamps == sorted(timestamps)
        assert len(set(timestamps)) == 20

    async def test_list_after(self, message_store, conversation_id):
        first = await message_store.append(conversation_id, "u1", "one")
        second = await message_store.append(conversation_id, "u2", "two")
        newer = await message_store.list(conversation_id, after=first.created_at)
        assert [m.id for m in newer] == [second.id]

    async def test_latest(self, message_store, conversation_id):
        assert await message_store.latest(conversation_id) is None
        await message_store.append(conversation_id, "u1", "one")
        last = await message_store.append(conversation_id, "u2", "two")
        assert (await message_store.latest(conversation_id)).id == last.id


class TestSupportScenario:
    """End-to-end: support conversation with text and an image."""

    async def test_support_exchange(self, resolver, message_store, attachments, unread):
        conversation_id = await resolver.resolve("u1", "u2", "admin_support")
        assert await resolver.resolve("u2", "u1", "admin_support") == conversation_id

        m1 = await message_store.append(conversation_id, "u1", "Hello")

        reference = await attachments.upload(
            b"\x89PNG fake image",
            "photo.png",
            "image/png",
            AttachmentProfile.CHAT_IMAGE.constraints,
            "u2",
        )
        m2 = await message_store.append(conversation_id, "u2", "", reference)

        listed = await message_store.list(conversation_id)
        assert [m.id for m in listed] == [m1.id, m2.id]
        assert await unread.unread_count("u1") == 1

        await unread.mark_read("u1")
        assert await unread.unread_count("u1") == 0
