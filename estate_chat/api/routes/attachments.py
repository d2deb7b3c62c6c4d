"""Attachment API routes."""

import mimetypes

from fastapi import APIRouter, Query, Request, Response

from ...app import Application
from ...attachments import AttachmentProfile
from ...errors import ChatError, FileTooLargeError
from ...schemas import AttachmentSchema, AttachmentUrlResponse
from ..errors import http_error


def create_attachments_router(app: Application) -> APIRouter:
    """Create attachments router."""
    router = APIRouter(prefix="/api/attachments", tags=["attachments"])

    @router.post("", response_model=AttachmentSchema)
    async def upload_attachment(
        request: Request,
        uploader_id: str = Query(...),
        file_name: str = Query(...),
        profile: AttachmentProfile = Query(AttachmentProfile.CHAT_FILE),
    ) -> AttachmentSchema:
        """Upload the raw request body; Content-Type is the declared MIME type."""
        mime_type = (
            request.headers.get("content-type", "application/octet-stream")
            .split(";")[0]
            .strip()
        )
        constraints = AttachmentProfile(profile).constraints
        try:
            # Declared size and type are refused before the body is read.
            constraints.check(_declared_length(request), mime_type)
            data = await _read_body(request, constraints.max_bytes)
            reference = await app.chat.upload_attachment(
                data, file_name, mime_type, profile, uploader_id
            )
        except ChatError as e:
            raise http_error(e)
        return AttachmentSchema.from_domain(reference)

    @router.get("/url", response_model=AttachmentUrlResponse)
    async def attachment_url(path: str = Query(...)) -> AttachmentUrlResponse:
        try:
            url = app.blob_storage.public_url(path)
        except ChatError as e:
            raise http_error(e)
        return AttachmentUrlResponse(url=url)

    @router.get("/content")
    async def attachment_content(path: str = Query(...)) -> Response:
        """Serve stored bytes."""
        try:
            data = await app.blob_storage.download(path)
        except ChatError as e:
            raise http_error(e)
        media_type, _ = mimetypes.guess_type(path)
        return Response(content=data, media_type=media_type or "application/octet-stream")

    return router


def _declared_length(request: Request) -> int:
    try:
        return int(request.headers.get("content-length") or 0)
    except ValueError:
        return 0


async def _read_body(request: Request, max_bytes: int) -> bytes:
    """Read the request body, stopping as soon as it exceeds max_bytes."""
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            raise FileTooLargeError(size, max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)
