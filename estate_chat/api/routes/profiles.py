"""Profile and support API routes."""

from fastapi import APIRouter, HTTPException

from ...app import Application
from ...errors import ChatError
from ...models import Participant
from ...schemas import (
    ParticipantSchema,
    ProfileUpdate,
    ResolveResponse,
    SupportConversationRequest,
)
from ..errors import http_error


def create_profiles_router(app: Application) -> APIRouter:
    """Create profiles and support router."""
    router = APIRouter(prefix="/api", tags=["profiles"])

    @router.get("/profiles/{user_id}", response_model=ParticipantSchema)
    async def get_profile(user_id: str) -> ParticipantSchema:
        try:
            profile = await app.directory.get_profile(user_id)
        except ChatError as e:
            raise http_error(e)
        if profile is None:
            raise HTTPException(
                status_code=404,
                detail={"error": "ProfileNotFound", "message": f"Profile {user_id} not found"},
            )
        return ParticipantSchema.from_domain(profile)

    @router.put("/profiles/{user_id}", response_model=ParticipantSchema)
    async def put_profile(user_id: str, update: ProfileUpdate) -> ParticipantSchema:
        """Create or replace a profile."""
        profile = Participant(
            id=user_id,
            role=update.role,
            full_name=update.full_name,
            email=update.email,
        )
        try:
            await app.directory.save_profile(profile)
        except ChatError as e:
            raise http_error(e)
        return ParticipantSchema.from_domain(profile)

    @router.get("/support/agent", response_model=ParticipantSchema)
    async def get_support_agent() -> ParticipantSchema:
        """Administrator who receives support conversations."""
        try:
            agent = await app.chat.find_support_agent()
        except ChatError as e:
            raise http_error(e)
        return ParticipantSchema.from_domain(agent)

    @router.post("/support/conversations", response_model=ResolveResponse)
    async def start_support_conversation(
        request: SupportConversationRequest,
    ) -> ResolveResponse:
        try:
            conversation_id = await app.chat.start_support_conversation(
                request.user_id, request.subject
            )
        except ChatError as e:
            raise http_error(e)
        return ResolveResponse(conversation_id=conversation_id)

    return router
