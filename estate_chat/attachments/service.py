"""Attachment reference service."""

import secrets
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Protocol

from ..blobs import IBlobStorage
from ..errors import AttachmentServiceError, FileTooLargeError, UnsupportedTypeError
from ..logging_config import get_logger
from ..models import AttachmentReference

logger = get_logger(__name__)

MB = 1024 * 1024


@dataclass(frozen=True)
class UploadConstraints:
    """Size limit and optional MIME prefix allow-list for an upload."""

    max_bytes: int
    allowed_prefixes: tuple[str, ...] | None = None  # None means any type

    def check(self, size_bytes: int, mime_type: str) -> None:
        """Raise if a file of this size and type violates the constraints."""
        if size_bytes > self.max_bytes:
            raise FileTooLargeError(size_bytes, self.max_bytes)
        if self.allowed_prefixes is not None and not any(
            (mime_type or "").lower().startswith(prefix)
            for prefix in self.allowed_prefixes
        ):
            raise UnsupportedTypeError(mime_type, self.allowed_prefixes)


class AttachmentProfile(str, Enum):
    """Named upload profiles."""

    CHAT_IMAGE = "chat_image"
    CHAT_FILE = "chat_file"
    LISTING_IMAGE = "listing_image"
    LISTING_VIDEO = "listing_video"

    @property
    def constraints(self) -> UploadConstraints:
        return PROFILE_CONSTRAINTS[self]


PROFILE_CONSTRAINTS: dict[AttachmentProfile, UploadConstraints] = {
    AttachmentProfile.CHAT_IMAGE: UploadConstraints(5 * MB, ("image/",)),
    AttachmentProfile.CHAT_FILE: UploadConstraints(10 * MB),
    AttachmentProfile.LISTING_IMAGE: UploadConstraints(10 * MB, ("image/",)),
    AttachmentProfile.LISTING_VIDEO: UploadConstraints(100 * MB, ("video/",)),
}


class IAttachmentService(Protocol):
    """Uploads files and hands back references to embed in messages."""

    async def upload(
        self,
        data: bytes,
        declared_name: str,
        declared_mime: str,
        constraints: UploadConstraints,
        uploader_id: str,
    ) -> AttachmentReference:
        """Validate, upload and return a reference."""
        ...

    def resolve_url(self, reference: AttachmentReference) -> str:
        """URL for displaying or downloading the attachment."""
        ...

    async def download(self, reference: AttachmentReference) -> bytes:
        """Bytes of the attachment."""
        ...


def build_storage_path(uploader_id: str, file_name: str) -> str:
    """Collision-free path namespaced by uploader: <uploader>/<ms>-<rand>.<ext>"""
    suffix = PurePosixPath(file_name).suffix.lstrip(".").lower() or "file"
    unique = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}"
    return f"{uploader_id}/{unique}.{suffix}"


class AttachmentService:
    """Validates uploads against constraints, then stores them in blob storage.

    Constraint violations fail before any transfer. An upload is single-shot:
    a failed transfer raises AttachmentServiceError and must be retried whole.
    """

    def __init__(self, blob_storage: IBlobStorage):
        self._blobs = blob_storage

    async def upload(
        self,
        data: bytes,
        declared_name: str,
        declared_mime: str,
        constraints: UploadConstraints,
        uploader_id: str,
    ) -> AttachmentReference:
        """Validate, upload and return a reference."""
        size = len(data)
        constraints.check(size, declared_mime)

        path = build_storage_path(uploader_id, declared_name)
        await self._blobs.upload(path, data, declared_mime)
        logger.info(
            "Uploaded %s (%s, %d bytes)",
            declared_name,
            declared_mime,
            size,
            extra={"user_id": uploader_id, "storage_path": path},
        )

        return AttachmentReference(
            storage_path=path,
            file_name=declared_name,
            mime_type=declared_mime,
            size_bytes=size,
        )

    def resolve_url(self, reference: AttachmentReference) -> str:
        """URL for displaying or downloading the attachment."""
        return self._blobs.public_url(reference.storage_path)

    async def download(self, reference: AttachmentReference) -> bytes:
        """Bytes of the attachment."""
        data = await self._blobs.download(reference.storage_path)
        if len(data) != reference.size_bytes:
            raise AttachmentServiceError(
                f"{reference.storage_path}: expected {reference.size_bytes} bytes, "
                f"got {len(data)}"
            )
        return data
