"""Participant and conversation data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..errors import InvalidContextError


class Role(str, Enum):
    """Participant roles known to the messaging subsystem."""

    REGULAR = "regular"
    ADMIN = "admin"


@dataclass
class Participant:
    """A user profile as provided by the identity collaborator."""

    id: str
    role: Role = Role.REGULAR
    full_name: str | None = None
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class ContextKind(str, Enum):
    """Conversation context kinds."""

    NONE = "none"
    ADMIN_SUPPORT = "admin_support"
    LISTING = "listing"
    REQUEST = "request"


@dataclass(frozen=True)
class ConversationContext:
    """Qualifier narrowing conversation dedup scope.

    Serialized as ``none``, ``admin_support``, ``listing:<id>`` or
    ``request:<id>``.
    """

    kind: ContextKind = ContextKind.NONE
    ref_id: str | None = None

    def __post_init__(self):
        needs_ref = self.kind in (ContextKind.LISTING, ContextKind.REQUEST)
        if needs_ref and not self.ref_id:
            raise InvalidContextError(f"Context {self.kind.value!r} requires an id")
        if not needs_ref and self.ref_id:
            raise InvalidContextError(f"Context {self.kind.value!r} takes no id")

    @classmethod
    def none(cls) -> "ConversationContext":
        return cls(ContextKind.NONE)

    @classmethod
    def admin_support(cls) -> "ConversationContext":
        return cls(ContextKind.ADMIN_SUPPORT)

    @classmethod
    def listing(cls, listing_id: str) -> "ConversationContext":
        return cls(ContextKind.LISTING, listing_id)

    @classmethod
    def request(cls, request_id: str) -> "ConversationContext":
        return cls(ContextKind.REQUEST, request_id)

    @classmethod
    def parse(cls, value: "str | ConversationContext | None") -> "ConversationContext":
        """Parse the serialized form of a context."""
        if isinstance(value, ConversationContext):
            return value
        if value is None:
            return cls.none()
        if not isinstance(value, str):
            raise InvalidContextError(f"Unrecognized context: {value!r}")

        kind, sep, ref_id = value.partition(":")
        try:
            context_kind = ContextKind(kind)
        except ValueError:
            raise InvalidContextError(f"Unrecognized context: {value!r}") from None
        if sep and not ref_id:
            raise InvalidContextError(f"Context {value!r} has an empty id")
        return cls(context_kind, ref_id or None)

    def __str__(self) -> str:
        if self.ref_id:
            return f"{self.kind.value}:{self.ref_id}"
        return self.kind.value


@dataclass(frozen=True)
class PairKey:
    """Canonical, order-independent key for a two-participant pairing."""

    first: str
    second: str

    @classmethod
    def of(cls, user_one: str, user_two: str) -> "PairKey":
        ordered = sorted((str(user_one), str(user_two)))
        return cls(first=ordered[0], second=ordered[1])


@dataclass
class Conversation:
    """A dialogue between exactly two participants."""

    id: str
    participant_a: str
    participant_b: str
    context: ConversationContext
    subject: str
    created_at: datetime
    last_message_at: datetime

    @property
    def pair_key(self) -> PairKey:
        return PairKey.of(self.participant_a, self.participant_b)

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.participant_a, self.participant_b)

    def other_participant(self, user_id: str) -> str:
        """Return the participant that is not ``user_id``."""
        if user_id == self.participant_a:
            return self.participant_b
        if user_id == self.participant_b:
            return self.participant_a
        raise ValueError(f"{user_id} is not a participant of {self.id}")
