"""HTTP implementation of the chat backend."""

from datetime import datetime

import httpx

from ..attachments import AttachmentProfile
from ..errors import (
    ERRORS_BY_NAME,
    AttachmentServiceError,
    ChatError,
    ChatValidationError,
    StoreUnavailableError,
)
from ..logging_config import get_logger
from ..models import (
    AttachmentReference,
    Conversation,
    ConversationContext,
    Message,
    Participant,
)
from ..schemas import (
    AttachmentSchema,
    AttachmentUrlResponse,
    ConversationSchema,
    MessageSchema,
    ParticipantSchema,
    RequestConversationRequest,
    ResolveRequest,
    ResolveResponse,
    SendMessageRequest,
    SupportConversationRequest,
    UnreadResponse,
)
from .backend import REQUEST_SUBJECT, SUPPORT_SUBJECT

logger = get_logger(__name__)


class HttpChatClient:
    """Talks to the estate_chat HTTP API.

    Error responses are mapped back to the ChatError subclass named in the
    response body, so callers handle remote and in-process failures alike.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def resolve_conversation(
        self,
        participant_a: str,
        participant_b: str,
        context: ConversationContext | str | None = None,
        subject: str = "",
    ) -> str:
        body = ResolveRequest(
            participant_a=participant_a,
            participant_b=participant_b,
            context=str(ConversationContext.parse(context)),
            subject=subject,
        )
        data = await self._request(
            "POST", "/api/conversations/resolve", json=body.model_dump()
        )
        return ResolveResponse.model_validate(data).conversation_id

    async def get_conversation(self, conversation_id: str) -> Conversation:
        data = await self._request("GET", f"/api/conversations/{conversation_id}")
        return ConversationSchema.model_validate(data).to_domain()

    async def find_conversation(
        self,
        participant_a: str,
        participant_b: str,
        context: ConversationContext | str | None = None,
    ) -> Conversation | None:
        data = await self._request(
            "GET",
            "/api/conversations/find",
            params={
                "participant_a": participant_a,
                "participant_b": participant_b,
                "context": str(ConversationContext.parse(context)),
            },
        )
        if data is None:
            return None
        return ConversationSchema.model_validate(data).to_domain()

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        data = await self._request(
            "GET", "/api/conversations", params={"user_id": user_id}
        )
        return [ConversationSchema.model_validate(c).to_domain() for c in data]

    async def list_messages(
        self, conversation_id: str, after: datetime | None = None
    ) -> list[Message]:
        params = {"after": after.isoformat()} if after else None
        data = await self._request(
            "GET", f"/api/conversations/{conversation_id}/messages", params=params
        )
        return [MessageSchema.model_validate(m).to_domain() for m in data]

    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        attachment: AttachmentReference | None = None,
    ) -> Message:
        body = SendMessageRequest(
            sender_id=sender_id,
            content=content,
            attachment=AttachmentSchema.from_domain(attachment) if attachment else None,
        )
        data = await self._request(
            "POST",
            f"/api/conversations/{conversation_id}/messages",
            json=body.model_dump(mode="json"),
        )
        return MessageSchema.model_validate(data).to_domain()

    async def upload_attachment(
        self,
        data: bytes,
        file_name: str,
        mime_type: str,
        profile: AttachmentProfile,
        uploader_id: str,
    ) -> AttachmentReference:
        """Upload a file; size and type are checked locally before any transfer."""
        AttachmentProfile(profile).constraints.check(len(data), mime_type)
        result = await self._request(
            "POST",
            "/api/attachments",
            params={
                "uploader_id": uploader_id,
                "file_name": file_name,
                "profile": AttachmentProfile(profile).value,
            },
            content=data,
            headers={"Content-Type": mime_type},
            transport_error=AttachmentServiceError,
        )
        return AttachmentSchema.model_validate(result).to_domain()

    async def attachment_url(self, reference: AttachmentReference) -> str:
        data = await self._request(
            "GET", "/api/attachments/url", params={"path": reference.storage_path}
        )
        return AttachmentUrlResponse.model_validate(data).url

    async def download_attachment(self, reference: AttachmentReference) -> bytes:
        response = await self._send(
            "GET",
            "/api/attachments/content",
            params={"path": reference.storage_path},
            transport_error=AttachmentServiceError,
        )
        return response.content

    async def unread_count(self, user_id: str) -> int:
        return (await self._unread(user_id)).unread_count

    async def unread_by_conversation(self, user_id: str) -> dict[str, int]:
        return (await self._unread(user_id)).by_conversation

    async def mark_read(self, user_id: str) -> None:
        await self._request("POST", f"/api/users/{user_id}/read")

    async def mark_conversation_read(self, user_id: str, conversation_id: str) -> None:
        await self._request(
            "POST", f"/api/users/{user_id}/conversations/{conversation_id}/read"
        )

    async def get_profiles(self, user_ids: list[str]) -> dict[str, Participant]:
        profiles = {}
        for user_id in dict.fromkeys(user_ids):
            try:
                data = await self._request("GET", f"/api/profiles/{user_id}")
            except ChatError as e:
                if isinstance(e, StoreUnavailableError):
                    raise
                # Unknown users are simply absent from the result.
                continue
            profiles[user_id] = ParticipantSchema.model_validate(data).to_domain()
        return profiles

    async def find_support_agent(self) -> Participant:
        data = await self._request("GET", "/api/support/agent")
        return ParticipantSchema.model_validate(data).to_domain()

    async def start_support_conversation(
        self, user_id: str, subject: str = SUPPORT_SUBJECT
    ) -> str:
        body = SupportConversationRequest(user_id=user_id, subject=subject)
        data = await self._request(
            "POST", "/api/support/conversations", json=body.model_dump()
        )
        return ResolveResponse.model_validate(data).conversation_id

    async def list_all_conversations(self, admin_id: str) -> list[Conversation]:
        data = await self._request(
            "GET", "/api/admin/conversations", params={"admin_id": admin_id}
        )
        return [ConversationSchema.model_validate(c).to_domain() for c in data]

    async def start_request_conversation(
        self,
        admin_id: str,
        user_id: str,
        request_id: str,
        subject: str = REQUEST_SUBJECT,
    ) -> str:
        body = RequestConversationRequest(
            admin_id=admin_id, user_id=user_id, request_id=request_id, subject=subject
        )
        data = await self._request(
            "POST", "/api/admin/request-conversations", json=body.model_dump()
        )
        return ResolveResponse.model_validate(data).conversation_id

    async def _unread(self, user_id: str) -> UnreadResponse:
        data = await self._request("GET", f"/api/users/{user_id}/unread")
        return UnreadResponse.model_validate(data)

    async def _request(self, method: str, url: str, **kwargs):
        response = await self._send(method, url, **kwargs)
        return response.json()

    async def _send(
        self,
        method: str,
        url: str,
        transport_error: type[ChatError] = StoreUnavailableError,
        **kwargs,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise transport_error(f"{method} {url} failed: {e}") from e

        if response.is_error:
            raise self._error_from(response)
        return response

    @staticmethod
    def _error_from(response: httpx.Response) -> ChatError:
        try:
            body = response.json()
        except ValueError:
            body = None
        detail = body.get("detail") if isinstance(body, dict) else None

        if isinstance(detail, dict) and "error" in detail:
            error_cls = ERRORS_BY_NAME.get(detail["error"], ChatError)
            return error_cls.from_message(detail.get("message", ""))
        if response.status_code == 422:
            return ChatValidationError(str(detail))
        if response.status_code >= 500:
            return StoreUnavailableError(
                f"Server error {response.status_code}: {response.text}"
            )
        return ChatError(f"HTTP {response.status_code}: {response.text}")
