"""Display naming policy for chat participants."""

from ..models import Participant

ADMIN_LABEL = "Administrator"
SELF_LABEL = "You"
FALLBACK_LABEL = "User"
UNKNOWN_LABEL = "Unknown User"


def display_name(profile: Participant | None, viewer_id: str | None = None) -> str:
    """Name shown for a participant.

    Administrators are always shown as ADMIN_LABEL, whatever their personal
    name and whoever is looking.
    """
    if profile is None:
        return UNKNOWN_LABEL
    if profile.is_admin:
        return ADMIN_LABEL
    return profile.full_name or profile.email or FALLBACK_LABEL


def sender_label(profile: Participant | None, sender_id: str, viewer_id: str) -> str:
    """Label for a message sender as seen by viewer_id."""
    if sender_id == viewer_id:
        return SELF_LABEL
    return display_name(profile, viewer_id)
