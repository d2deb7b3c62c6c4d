"""Identity module."""

from .directory import IIdentityProvider, ProfileDirectory
from .display_names import (
    ADMIN_LABEL,
    FALLBACK_LABEL,
    SELF_LABEL,
    UNKNOWN_LABEL,
    display_name,
    sender_label,
)

__all__ = [
    "IIdentityProvider",
    "ProfileDirectory",
    "ADMIN_LABEL",
    "FALLBACK_LABEL",
    "SELF_LABEL",
    "UNKNOWN_LABEL",
    "display_name",
    "sender_label",
]
