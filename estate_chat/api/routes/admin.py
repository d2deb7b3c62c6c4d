"""Moderation API routes for administrators."""

from fastapi import APIRouter, Query

from ...app import Application
from ...errors import ChatError
from ...schemas import ConversationSchema, RequestConversationRequest, ResolveResponse
from ..errors import http_error


def create_admin_router(app: Application) -> APIRouter:
    """Create admin router. Every route checks the caller's admin role."""
    router = APIRouter(prefix="/api/admin", tags=["admin"])

    @router.get("/conversations", response_model=list[ConversationSchema])
    async def list_all_conversations(
        admin_id: str = Query(..., description="Requesting administrator"),
    ) -> list[ConversationSchema]:
        try:
            conversations = await app.chat.list_all_conversations(admin_id)
        except ChatError as e:
            raise http_error(e)
        return [ConversationSchema.from_domain(c) for c in conversations]

    @router.post("/request-conversations", response_model=ResolveResponse)
    async def start_request_conversation(
        request: RequestConversationRequest,
    ) -> ResolveResponse:
        try:
            conversation_id = await app.chat.start_request_conversation(
                request.admin_id, request.user_id, request.request_id, request.subject
            )
        except ChatError as e:
            raise http_error(e)
        return ResolveResponse(conversation_id=conversation_id)

    return router
