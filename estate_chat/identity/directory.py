"""Profile directory standing in for the identity collaborator."""

from typing import Protocol

from ..errors import SupportTargetNotFoundError
from ..logging_config import get_logger
from ..models import Participant
from ..storage import IStorage

logger = get_logger(__name__)


class IIdentityProvider(Protocol):
    """Read access to participant profiles."""

    async def get_profile(self, user_id: str) -> Participant | None:
        """Get a participant's profile."""
        ...

    async def get_profiles(self, user_ids: list[str]) -> dict[str, Participant]:
        """Get profiles keyed by id; unknown ids are omitted."""
        ...

    async def find_support_agent(self) -> Participant:
        """Administrator receiving support conversations."""
        ...


class ProfileDirectory:
    """Profiles kept in the local store.

    The support agent is the admin with the configured support email, or any
    admin when no email is configured.
    """

    def __init__(self, storage: IStorage, support_email: str | None = None):
        self._storage = storage
        self._support_email = support_email

    async def save_profile(self, profile: Participant) -> None:
        await self._storage.save_profile(profile)

    async def get_profile(self, user_id: str) -> Participant | None:
        return await self._storage.get_profile(user_id)

    async def get_profiles(self, user_ids: list[str]) -> dict[str, Participant]:
        return await self._storage.get_profiles(sorted(set(user_ids)))

    async def find_support_agent(self) -> Participant:
        """Administrator receiving support conversations."""
        admin = await self._storage.find_admin(self._support_email)
        if admin is None:
            logger.warning("No support admin found (email=%s)", self._support_email)
            raise SupportTargetNotFoundError("No administrator available for support")
        return admin
