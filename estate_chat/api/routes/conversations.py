"""Conversation and message API routes."""

from datetime import datetime

from fastapi import APIRouter, Query

from ...app import Application
from ...errors import ChatError
from ...schemas import (
    ConversationSchema,
    MessageSchema,
    ResolveRequest,
    ResolveResponse,
    SendMessageRequest,
)
from ..errors import http_error


def create_conversations_router(app: Application) -> APIRouter:
    """Create conversations router."""
    router = APIRouter(prefix="/api/conversations", tags=["conversations"])

    @router.post("/resolve", response_model=ResolveResponse)
    async def resolve_conversation(request: ResolveRequest) -> ResolveResponse:
        """Find or create the conversation for a participant pair and context."""
        try:
            conversation_id = await app.chat.resolve_conversation(
                request.participant_a,
                request.participant_b,
                request.context,
                request.subject,
            )
        except ChatError as e:
            raise http_error(e)
        return ResolveResponse(conversation_id=conversation_id)

    @router.get("", response_model=list[ConversationSchema])
    async def list_conversations(
        user_id: str = Query(..., description="Participant whose conversations to list"),
    ) -> list[ConversationSchema]:
        """List a user's conversations, most recently active first."""
        try:
            conversations = await app.chat.list_conversations(user_id)
        except ChatError as e:
            raise http_error(e)
        return [ConversationSchema.from_domain(c) for c in conversations]

    @router.get("/find", response_model=ConversationSchema | None)
    async def find_conversation(
        participant_a: str,
        participant_b: str,
        context: str = "none",
    ) -> ConversationSchema | None:
        """Look up a conversation without creating it."""
        try:
            conversation = await app.chat.find_conversation(
                participant_a, participant_b, context
            )
        except ChatError as e:
            raise http_error(e)
        return ConversationSchema.from_domain(conversation) if conversation else None

    @router.get("/{conversation_id}", response_model=ConversationSchema)
    async def get_conversation(conversation_id: str) -> ConversationSchema:
        try:
            conversation = await app.chat.get_conversation(conversation_id)
        except ChatError as e:
            raise http_error(e)
        return ConversationSchema.from_domain(conversation)

    @router.get("/{conversation_id}/messages", response_model=list[MessageSchema])
    async def list_messages(
        conversation_id: str,
        after: datetime | None = Query(None, description="Only messages after this ISO timestamp"),
    ) -> list[MessageSchema]:
        """List messages in ascending order."""
        try:
            messages = await app.chat.list_messages(conversation_id, after=after)
        except ChatError as e:
            raise http_error(e)
        return [MessageSchema.from_domain(m) for m in messages]

    @router.post("/{conversation_id}/messages", response_model=MessageSchema)
    async def send_message(
        conversation_id: str, request: SendMessageRequest
    ) -> MessageSchema:
        """Append a message to a conversation."""
        try:
            message = await app.chat.send_message(
                conversation_id,
                request.sender_id,
                request.content,
                request.attachment.to_domain() if request.attachment else None,
            )
        except ChatError as e:
            raise http_error(e)
        return MessageSchema.from_domain(message)

    return router
