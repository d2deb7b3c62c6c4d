"""Unread state API routes."""

from fastapi import APIRouter

from ...app import Application
from ...errors import ChatError
from ...schemas import StatusResponse, UnreadResponse
from ..errors import http_error


def create_unread_router(app: Application) -> APIRouter:
    """Create unread router."""
    router = APIRouter(prefix="/api/users", tags=["unread"])

    @router.get("/{user_id}/unread", response_model=UnreadResponse)
    async def get_unread(user_id: str) -> UnreadResponse:
        try:
            by_conversation = await app.chat.unread_by_conversation(user_id)
        except ChatError as e:
            raise http_error(e)
        return UnreadResponse(
            user_id=user_id,
            unread_count=sum(by_conversation.values()),
            by_conversation=by_conversation,
        )

    @router.post("/{user_id}/read", response_model=StatusResponse)
    async def mark_read(user_id: str) -> StatusResponse:
        """Mark everything the user has received as read."""
        try:
            await app.chat.mark_read(user_id)
        except ChatError as e:
            raise http_error(e)
        return StatusResponse(status="ok")

    @router.post(
        "/{user_id}/conversations/{conversation_id}/read",
        response_model=StatusResponse,
    )
    async def mark_conversation_read(user_id: str, conversation_id: str) -> StatusResponse:
        try:
            await app.chat.mark_conversation_read(user_id, conversation_id)
        except ChatError as e:
            raise http_error(e)
        return StatusResponse(status="ok")

    return router
