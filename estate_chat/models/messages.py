"""Message-related data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AttachmentReference:
    """Opaque pointer plus metadata for a file stored in blob storage."""

    storage_path: str
    file_name: str
    mime_type: str
    size_bytes: int

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


@dataclass(frozen=True)
class Message:
    """A single immutable message in a conversation."""

    id: str
    conversation_id: str
    sender_id: str
    content: str
    created_at: datetime
    attachment: AttachmentReference | None = None
    seq: int | None = None  # store-assigned insertion sequence
