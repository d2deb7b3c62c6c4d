"""Tests for data models."""

from datetime import datetime, timezone

import pytest

from estate_chat.errors import InvalidContextError
from estate_chat.models import (
    AttachmentReference,
    ContextKind,
    Conversation,
    ConversationContext,
    PairKey,
    Participant,
    Role,
)


class TestConversationContext:
    """Tests for ConversationContext parsing and formatting."""

    def test_parse_none_defaults(self):
        """Test that a missing context parses as none."""
        assert ConversationContext.parse(None) == ConversationContext.none()
        assert ConversationContext.parse("none").kind == ContextKind.NONE

    def test_parse_admin_support(self):
        assert ConversationContext.parse("admin_support") == ConversationContext.admin_support()

    def test_parse_listing_with_id(self):
        """Test that listing contexts carry their listing id."""
        ctx = ConversationContext.parse("listing:42")
        assert ctx.kind == ContextKind.LISTING
        assert ctx.ref_id == "42"
        assert str(ctx) == "listing:42"

    def test_parse_keeps_colons_in_id(self):
        ctx = ConversationContext.parse("request:a:b")
        assert ctx.ref_id == "a:b"

    @pytest.mark.parametrize(
        "value", ["", "support", "listing", "listing:", "none:1", "admin_support:x"]
    )
    def test_parse_rejects_invalid(self, value):
        """Test that unrecognized or malformed contexts are rejected."""
        with pytest.raises(InvalidContextError):
            ConversationContext.parse(value)

    def test_parse_passes_through_instances(self):
        ctx = ConversationContext.request("r1")
        assert ConversationContext.parse(ctx) is ctx

    def test_round_trip_through_str(self):
        for ctx in (
            ConversationContext.none(),
            ConversationContext.admin_support(),
            ConversationContext.listing("L-7"),
        ):
            assert ConversationContext.parse(str(ctx)) == ctx


class TestPairKey:
    """Tests for the unordered pair key."""

    def test_order_independent(self):
        """Test that argument order does not change the key."""
        assert PairKey.of("u2", "u1") == PairKey.of("u1", "u2")
        assert PairKey.of("u2", "u1") == PairKey(first="u1", second="u2")

    def test_ids_with_separator_characters_stay_distinct(self):
        assert PairKey.of("a|b", "c") != PairKey.of("a", "b|c")


class TestConversation:
    """Tests for Conversation helpers."""

    def _conversation(self):
        now = datetime.now(timezone.utc)
        return Conversation(
            id="c1",
            participant_a="u1",
            participant_b="u2",
            context=ConversationContext.none(),
            subject="",
            created_at=now,
            last_message_at=now,
        )

    def test_other_participant(self):
        conversation = self._conversation()
        assert conversation.other_participant("u1") == "u2"
        assert conversation.other_participant("u2") == "u1"

    def test_other_participant_rejects_outsider(self):
        with pytest.raises(ValueError):
            self._conversation().other_participant("u3")

    def test_has_participant(self):
        conversation = self._conversation()
        assert conversation.has_participant("u1")
        assert not conversation.has_participant("u3")


class TestParticipant:
    def test_is_admin(self):
        assert Participant(id="a", role=Role.ADMIN).is_admin
        assert not Participant(id="b").is_admin


class TestAttachmentReference:
    def test_is_image(self):
        image = AttachmentReference("u1/1-a.png", "photo.png", "image/png", 10)
        document = AttachmentReference("u1/1-b.pdf", "lease.pdf", "application/pdf", 10)
        assert image.is_image
        assert not document.is_image
