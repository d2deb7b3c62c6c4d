"""Contact-support entry flow."""

import asyncio
from enum import Enum

from ..errors import (
    ChatError,
    SelfConversationError,
    StoreUnavailableError,
    SupportTargetNotFoundError,
)
from ..logging_config import get_logger
from ..models import Conversation, ConversationContext, Participant
from .backend import SUPPORT_SUBJECT, IChatBackend
from .cache import QueryCache
from .controller import ChatSession, Notice

logger = get_logger(__name__)


class SupportFlowState(str, Enum):
    SIGNING_IN_REQUIRED = "signing_in_required"
    LOOKING_UP_SUPPORT_TARGET = "looking_up_support_target"
    SUPPORT_TARGET_FOUND = "support_target_found"
    SUPPORT_TARGET_ERROR = "support_target_error"


class SupportChatFlow:
    """Finds the support agent and opens the user's support conversation.

    A signed-out user stops at SIGNING_IN_REQUIRED. A missing support agent
    is terminal for this entry point; only store failures are retryable.
    """

    def __init__(
        self,
        backend: IChatBackend,
        user: Participant | None,
        cache: QueryCache | None = None,
        timeout: float = 10.0,
    ):
        self._backend = backend
        self.user = user
        self.cache = cache if cache is not None else QueryCache()
        self._timeout = timeout

        self.state = SupportFlowState.SIGNING_IN_REQUIRED
        self.agent: Participant | None = None
        self.existing: Conversation | None = None
        self.notices: list[Notice] = []
        self.last_error: ChatError | None = None

    @property
    def can_retry(self) -> bool:
        return (
            self.state == SupportFlowState.SUPPORT_TARGET_ERROR
            and self.last_error is not None
            and self.last_error.retryable
        )

    async def start(self) -> SupportFlowState:
        """Look up the support agent and any existing support conversation."""
        if self.user is None:
            self.state = SupportFlowState.SIGNING_IN_REQUIRED
            self.notices.append(
                Notice(
                    title="Sign in required",
                    description="Please sign in to contact support",
                )
            )
            return self.state

        self.state = SupportFlowState.LOOKING_UP_SUPPORT_TARGET
        try:
            agent = await self._call(self._backend.find_support_agent())
            if agent.id == self.user.id:
                raise SelfConversationError("Support cannot contact itself")
            existing = await self._call(
                self._backend.find_conversation(
                    self.user.id, agent.id, ConversationContext.admin_support()
                )
            )
        except ChatError as e:
            self.state = SupportFlowState.SUPPORT_TARGET_ERROR
            self.last_error = e
            title = (
                "Support unavailable"
                if isinstance(e, SupportTargetNotFoundError)
                else "Could not reach support"
            )
            self.notices.append(
                Notice(title=title, description=str(e), retryable=e.retryable)
            )
            logger.warning("%s: %s", title, e)
            return self.state

        self.agent = agent
        self.existing = existing
        self.last_error = None
        self.state = SupportFlowState.SUPPORT_TARGET_FOUND
        return self.state

    async def retry(self) -> SupportFlowState:
        if not self.can_retry:
            return self.state
        return await self.start()

    async def open_session(self, subject: str = SUPPORT_SUBJECT) -> ChatSession:
        """Open a chat session with the support agent."""
        if self.state != SupportFlowState.SUPPORT_TARGET_FOUND:
            raise RuntimeError(f"Support target not available ({self.state.value})")

        session = ChatSession(
            self._backend, self.user.id, cache=self.cache, timeout=self._timeout
        )
        if self.existing is not None:
            await session.open_existing(self.existing.id)
        else:
            await session.open(
                self.agent.id, ConversationContext.admin_support(), subject
            )
        return session

    async def _call(self, awaitable):
        try:
            return await asyncio.wait_for(awaitable, self._timeout)
        except asyncio.TimeoutError:
            raise StoreUnavailableError(
                f"Request timed out after {self._timeout}s"
            ) from None
