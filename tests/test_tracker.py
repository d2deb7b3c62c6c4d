"""Tests for Tracker."""

from datetime import datetime, timezone

import pytest

from estate_chat.models import BusMessage, Topic


class TestTracker:
    """Tests for Tracker."""

    @pytest.mark.asyncio
    async def test_track_saves_event(self, tracker, storage):
        """Test that track() persists a TraceEvent."""
        await tracker.track("custom", "tester", {"key": "value"})

        events = await storage.get_trace_events()
        assert len(events) == 1
        assert events[0].event_type == "custom"
        assert events[0].actor == "tester"
        assert events[0].data == {"key": "value"}

    @pytest.mark.asyncio
    async def test_bus_messages_become_trace_events(self, tracker, event_bus, storage):
        await event_bus.publish(
            BusMessage(
                id="b1",
                topic=Topic.READ_MARKED,
                payload={"user_id": "u1"},
                source="unread_tracker",
                timestamp=datetime.now(timezone.utc),
            )
        )

        events = await storage.get_trace_events(event_types=["read_marked"])
        assert len(events) == 1
        assert events[0].actor == "u1"
        assert events[0].data == {"user_id": "u1", "source": "unread_tracker"}

    @pytest.mark.asyncio
    async def test_messaging_activity_is_traced(self, tracker, resolver, message_store, storage):
        """Test that conversation and message activity shows up as trace events."""
        conversation_id = await resolver.resolve("u1", "u2")
        await message_store.append(conversation_id, "u1", "hello")

        events = await storage.get_trace_events()
        assert {e.event_type for e in events} == {
            "conversation_created",
            "message_appended",
        }

    @pytest.mark.asyncio
    async def test_component_is_actor_without_user(self, tracker, event_bus, storage):
        published_at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        await event_bus.publish(
            BusMessage(
                id="b2",
                topic=Topic.CONVERSATION_CREATED,
                payload={"conversation_id": "c1"},
                source="conversation_resolver",
                timestamp=published_at,
            )
        )

        events = await storage.get_trace_events()
        assert events[0].actor == "conversation_resolver"
        assert events[0].timestamp == published_at
