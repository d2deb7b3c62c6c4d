"""Chat backend seen by session controllers."""

from datetime import datetime
from typing import Protocol

from ..attachments import AttachmentProfile, IAttachmentService
from ..conversations import IConversationResolver
from ..identity import IIdentityProvider
from ..errors import NotAnAdminError
from ..logging_config import get_logger
from ..messaging import IMessageStore
from ..models import (
    AttachmentReference,
    Conversation,
    ConversationContext,
    Message,
    Participant,
)
from ..unread import UnreadTracker

logger = get_logger(__name__)

SUPPORT_SUBJECT = "General Support"
REQUEST_SUBJECT = "Property Request Support"


class IChatBackend(Protocol):
    """Operations a chat view needs. Every call is a blocking round trip."""

    async def resolve_conversation(
        self,
        participant_a: str,
        participant_b: str,
        context: ConversationContext | str | None = None,
        subject: str = "",
    ) -> str:
        ...

    async def get_conversation(self, conversation_id: str) -> Conversation:
        ...

    async def find_conversation(
        self,
        participant_a: str,
        participant_b: str,
        context: ConversationContext | str | None = None,
    ) -> Conversation | None:
        ...

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        ...

    async def list_messages(
        self, conversation_id: str, after: datetime | None = None
    ) -> list[Message]:
        ...

    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        attachment: AttachmentReference | None = None,
    ) -> Message:
        ...

    async def upload_attachment(
        self,
        data: bytes,
        file_name: str,
        mime_type: str,
        profile: AttachmentProfile,
        uploader_id: str,
    ) -> AttachmentReference:
        ...

    async def attachment_url(self, reference: AttachmentReference) -> str:
        ...

    async def download_attachment(self, reference: AttachmentReference) -> bytes:
        ...

    async def unread_count(self, user_id: str) -> int:
        ...

    async def unread_by_conversation(self, user_id: str) -> dict[str, int]:
        ...

    async def mark_read(self, user_id: str) -> None:
        ...

    async def mark_conversation_read(self, user_id: str, conversation_id: str) -> None:
        ...

    async def get_profiles(self, user_ids: list[str]) -> dict[str, Participant]:
        ...

    async def find_support_agent(self) -> Participant:
        ...

    async def start_support_conversation(
        self, user_id: str, subject: str = SUPPORT_SUBJECT
    ) -> str:
        ...

    async def list_all_conversations(self, admin_id: str) -> list[Conversation]:
        ...

    async def start_request_conversation(
        self,
        admin_id: str,
        user_id: str,
        request_id: str,
        subject: str = REQUEST_SUBJECT,
    ) -> str:
        ...


class ChatService:
    """In-process backend composed from the messaging components."""

    def __init__(
        self,
        resolver: IConversationResolver,
        messages: IMessageStore,
        attachments: IAttachmentService,
        unread: UnreadTracker,
        identity: IIdentityProvider,
    ):
        self._resolver = resolver
        self._messages = messages
        self._attachments = attachments
        self._unread = unread
        self._identity = identity

    async def resolve_conversation(
        self,
        participant_a: str,
        participant_b: str,
        context: ConversationContext | str | None = None,
        subject: str = "",
    ) -> str:
        return await self._resolver.resolve(participant_a, participant_b, context, subject)

    async def get_conversation(self, conversation_id: str) -> Conversation:
        return await self._resolver.get(conversation_id)

    async def find_conversation(
        self,
        participant_a: str,
        participant_b: str,
        context: ConversationContext | str | None = None,
    ) -> Conversation | None:
        return await self._resolver.find(participant_a, participant_b, context)

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        return await self._resolver.list_for_user(user_id)

    async def list_messages(
        self, conversation_id: str, after: datetime | None = None
    ) -> list[Message]:
        # Listing an unknown conversation is an error, not an empty log.
        await self._resolver.get(conversation_id)
        return await self._messages.list(conversation_id, after=after)

    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        attachment: AttachmentReference | None = None,
    ) -> Message:
        return await self._messages.append(conversation_id, sender_id, content, attachment)

    async def upload_attachment(
        self,
        data: bytes,
        file_name: str,
        mime_type: str,
        profile: AttachmentProfile,
        uploader_id: str,
    ) -> AttachmentReference:
        return await self._attachments.upload(
            data, file_name, mime_type, AttachmentProfile(profile).constraints, uploader_id
        )

    async def attachment_url(self, reference: AttachmentReference) -> str:
        return self._attachments.resolve_url(reference)

    async def download_attachment(self, reference: AttachmentReference) -> bytes:
        return await self._attachments.download(reference)

    async def unread_count(self, user_id: str) -> int:
        return await self._unread.unread_count(user_id)

    async def unread_by_conversation(self, user_id: str) -> dict[str, int]:
        return await self._unread.unread_by_conversation(user_id)

    async def mark_read(self, user_id: str) -> None:
        await self._unread.mark_read(user_id)

    async def mark_conversation_read(self, user_id: str, conversation_id: str) -> None:
        await self._unread.mark_conversation_read(user_id, conversation_id)

    async def get_profiles(self, user_ids: list[str]) -> dict[str, Participant]:
        return await self._identity.get_profiles(user_ids)

    async def find_support_agent(self) -> Participant:
        return await self._identity.find_support_agent()

    async def start_support_conversation(
        self, user_id: str, subject: str = SUPPORT_SUBJECT
    ) -> str:
        """Resolve the admin_support conversation between a user and support."""
        agent = await self._identity.find_support_agent()
        conversation_id = await self._resolver.resolve(
            user_id, agent.id, ConversationContext.admin_support(), subject
        )
        logger.info("Support conversation %s ready for %s", conversation_id, user_id)
        return conversation_id

    # Moderation

    async def list_all_conversations(self, admin_id: str) -> list[Conversation]:
        """Every conversation, most recently active first. Admins only."""
        await self._require_admin(admin_id)
        return await self._resolver.list_all()

    async def start_request_conversation(
        self,
        admin_id: str,
        user_id: str,
        request_id: str,
        subject: str = REQUEST_SUBJECT,
    ) -> str:
        """Resolve the conversation an admin opens about a property request."""
        await self._require_admin(admin_id)
        conversation_id = await self._resolver.resolve(
            admin_id, user_id, ConversationContext.request(request_id), subject
        )
        logger.info(
            "Request %s conversation ready between %s and %s",
            request_id,
            admin_id,
            user_id,
            extra={"conversation_id": conversation_id},
        )
        return conversation_id

    async def _require_admin(self, user_id: str) -> Participant:
        profile = await self._identity.get_profile(user_id)
        if profile is None or not profile.is_admin:
            raise NotAnAdminError(user_id)
        return profile
