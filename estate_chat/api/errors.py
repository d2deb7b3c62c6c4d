"""Mapping of messaging errors to HTTP responses."""

from fastapi import HTTPException

from ..errors import (
    AttachmentServiceError,
    ChatError,
    ChatValidationError,
    ConversationNotFoundError,
    FileTooLargeError,
    NotAParticipantError,
    NotAnAdminError,
    StoreUnavailableError,
    SupportTargetNotFoundError,
    UnsupportedTypeError,
)

STATUS_BY_ERROR: dict[type[ChatError], int] = {
    FileTooLargeError: 413,
    UnsupportedTypeError: 415,
    ChatValidationError: 400,
    NotAParticipantError: 403,
    NotAnAdminError: 403,
    ConversationNotFoundError: 404,
    SupportTargetNotFoundError: 404,
    AttachmentServiceError: 502,
    StoreUnavailableError: 503,
}


def status_for(error: ChatError) -> int:
    """Most specific status code registered for the error's class."""
    for cls in type(error).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


def http_error(error: ChatError) -> HTTPException:
    """HTTPException carrying the error class name and message."""
    return HTTPException(
        status_code=status_for(error),
        detail={"error": type(error).__name__, "message": str(error)},
    )
