"""Control API routes."""

from fastapi import APIRouter

from ...app import Application
from ...errors import ChatError
from ...schemas import StatusResponse
from ..errors import http_error


def create_control_router(app: Application) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> StatusResponse:
        """Reset system data between test runs."""
        try:
            await app.reset()
        except ChatError as e:
            raise http_error(e)
        return StatusResponse(status="ok")

    return router
