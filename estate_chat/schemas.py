"""Wire schemas shared by the HTTP API and the HTTP client."""

from datetime import datetime

from pydantic import BaseModel

from .models import (
    AttachmentReference,
    Conversation,
    ConversationContext,
    Message,
    Participant,
    Role,
)


class ParticipantSchema(BaseModel):
    """Participant profile."""

    id: str
    role: Role = Role.REGULAR
    full_name: str | None = None
    email: str | None = None

    @classmethod
    def from_domain(cls, profile: Participant) -> "ParticipantSchema":
        return cls(
            id=profile.id,
            role=profile.role,
            full_name=profile.full_name,
            email=profile.email,
        )

    def to_domain(self) -> Participant:
        return Participant(
            id=self.id, role=self.role, full_name=self.full_name, email=self.email
        )


class ProfileUpdate(BaseModel):
    """Profile fields accepted on PUT."""

    role: Role = Role.REGULAR
    full_name: str | None = None
    email: str | None = None


class ConversationSchema(BaseModel):
    """Conversation row."""

    id: str
    participant_a: str
    participant_b: str
    context: str
    subject: str
    created_at: datetime
    last_message_at: datetime

    @classmethod
    def from_domain(cls, conversation: Conversation) -> "ConversationSchema":
        return cls(
            id=conversation.id,
            participant_a=conversation.participant_a,
            participant_b=conversation.participant_b,
            context=str(conversation.context),
            subject=conversation.subject,
            created_at=conversation.created_at,
            last_message_at=conversation.last_message_at,
        )

    def to_domain(self) -> Conversation:
        return Conversation(
            id=self.id,
            participant_a=self.participant_a,
            participant_b=self.participant_b,
            context=ConversationContext.parse(self.context),
            subject=self.subject,
            created_at=self.created_at,
            last_message_at=self.last_message_at,
        )


class AttachmentSchema(BaseModel):
    """Attachment reference embedded in a message."""

    storage_path: str
    file_name: str
    mime_type: str
    size_bytes: int

    @classmethod
    def from_domain(cls, reference: AttachmentReference) -> "AttachmentSchema":
        return cls(
            storage_path=reference.storage_path,
            file_name=reference.file_name,
            mime_type=reference.mime_type,
            size_bytes=reference.size_bytes,
        )

    def to_domain(self) -> AttachmentReference:
        return AttachmentReference(
            storage_path=self.storage_path,
            file_name=self.file_name,
            mime_type=self.mime_type,
            size_bytes=self.size_bytes,
        )


class MessageSchema(BaseModel):
    """Stored message."""

    id: str
    conversation_id: str
    sender_id: str
    content: str
    attachment: AttachmentSchema | None = None
    created_at: datetime
    seq: int | None = None

    @classmethod
    def from_domain(cls, message: Message) -> "MessageSchema":
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            content=message.content,
            attachment=(
                AttachmentSchema.from_domain(message.attachment)
                if message.attachment
                else None
            ),
            created_at=message.created_at,
            seq=message.seq,
        )

    def to_domain(self) -> Message:
        return Message(
            id=self.id,
            conversation_id=self.conversation_id,
            sender_id=self.sender_id,
            content=self.content,
            attachment=self.attachment.to_domain() if self.attachment else None,
            created_at=self.created_at,
            seq=self.seq,
        )


class ResolveRequest(BaseModel):
    """Request model for conversation resolution."""

    participant_a: str
    participant_b: str
    context: str = "none"
    subject: str = ""


class ResolveResponse(BaseModel):
    """Response model for conversation resolution."""

    conversation_id: str


class SendMessageRequest(BaseModel):
    """Request model for appending a message."""

    sender_id: str
    content: str = ""
    attachment: AttachmentSchema | None = None


class UnreadResponse(BaseModel):
    """Unread state of a user."""

    user_id: str
    unread_count: int
    by_conversation: dict[str, int]


class SupportConversationRequest(BaseModel):
    """Request model for opening a support conversation."""

    user_id: str
    subject: str = "General Support"


class RequestConversationRequest(BaseModel):
    """Request model for an admin opening a property request conversation."""

    admin_id: str
    user_id: str
    request_id: str
    subject: str = "Property Request Support"


class AttachmentUrlResponse(BaseModel):
    """Resolved attachment URL."""

    url: str


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str
