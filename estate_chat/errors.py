"""Error taxonomy for conversation and messaging operations."""


class ChatError(Exception):
    """Base class for all messaging errors."""

    retryable = False

    @classmethod
    def from_message(cls, message: str) -> "ChatError":
        """Rebuild an error received over the wire, without its extra fields."""
        error = cls.__new__(cls)
        Exception.__init__(error, message)
        return error


class ChatValidationError(ChatError):
    """Input rejected before any storage or network call."""


class SelfConversationError(ChatValidationError):
    """Both participants of a conversation are the same user."""


class InvalidContextError(ChatValidationError):
    """Conversation context is not one of the recognized kinds."""


class EmptyMessageError(ChatValidationError):
    """Message has neither content nor an attachment."""


class FileTooLargeError(ChatValidationError):
    """Upload exceeds the size limit of its constraints."""

    def __init__(self, size_bytes: int, max_bytes: int):
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(
            f"File is {size_bytes} bytes; limit is {max_bytes} bytes "
            f"({max_bytes // (1024 * 1024)}MB)"
        )


class UnsupportedTypeError(ChatValidationError):
    """Upload MIME type is outside the allowed prefixes."""

    def __init__(self, mime_type: str, allowed_prefixes: tuple[str, ...]):
        self.mime_type = mime_type
        self.allowed_prefixes = allowed_prefixes
        super().__init__(
            f"Unsupported file type {mime_type!r}; "
            f"allowed: {', '.join(allowed_prefixes)}"
        )


class NotAParticipantError(ChatError):
    """Sender is not one of the conversation's two participants."""

    def __init__(self, user_id: str, conversation_id: str):
        self.user_id = user_id
        self.conversation_id = conversation_id
        super().__init__(
            f"User {user_id} is not a participant of conversation {conversation_id}"
        )


class NotAnAdminError(ChatError):
    """Operation is reserved for administrators."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} is not an administrator")


class ConversationNotFoundError(ChatError):
    """No conversation exists with the given id."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} not found")


class SupportTargetNotFoundError(ChatError):
    """No administrator is available to receive support conversations."""


class StoreUnavailableError(ChatError):
    """The persistent store could not be reached or failed."""

    retryable = True


class AttachmentServiceError(ChatError):
    """Blob storage failed to accept or return a file."""

    retryable = True


ERRORS_BY_NAME: dict[str, type[ChatError]] = {
    cls.__name__: cls
    for cls in (
        ChatError,
        ChatValidationError,
        SelfConversationError,
        InvalidContextError,
        EmptyMessageError,
        FileTooLargeError,
        UnsupportedTypeError,
        NotAParticipantError,
        NotAnAdminError,
        ConversationNotFoundError,
        SupportTargetNotFoundError,
        StoreUnavailableError,
        AttachmentServiceError,
    )
}
