"""Attachments module."""

from .service import (
    PROFILE_CONSTRAINTS,
    AttachmentProfile,
    AttachmentService,
    IAttachmentService,
    UploadConstraints,
    build_storage_path,
)

__all__ = [
    "PROFILE_CONSTRAINTS",
    "AttachmentProfile",
    "AttachmentService",
    "IAttachmentService",
    "UploadConstraints",
    "build_storage_path",
]
