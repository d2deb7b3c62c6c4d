"""Application bootstrap and lifecycle management."""

from typing import Protocol

from .attachments import AttachmentService, IAttachmentService
from .blobs import HttpBlobStorage, IBlobStorage, LocalBlobStorage
from .config import Settings, resolve_blobs_dir, resolve_db_path
from .conversations import ConversationResolver, IConversationResolver
from .event_bus import EventBus
from .identity import ProfileDirectory
from .logging_config import get_logger
from .messaging import IMessageStore, MessageStore
from .session import ChatService
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .unread import UnreadTracker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        db_path: str | None = None,
        settings: Settings | None = None,
        blob_storage: IBlobStorage | None = None,
    ):
        self.settings = settings or Settings.from_env()
        self._db_path = resolve_db_path(
            self.settings.database_url if db_path is None else db_path
        )
        self._external_blobs = blob_storage

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._event_bus: EventBus | None = None
        self._tracker: ITracker | None = None
        self._blob_storage: IBlobStorage | None = None
        self._attachments: IAttachmentService | None = None
        self._resolver: IConversationResolver | None = None
        self._messages: IMessageStore | None = None
        self._unread: UnreadTracker | None = None
        self._directory: ProfileDirectory | None = None
        self._chat: ChatService | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. EventBus
        self._event_bus = EventBus()

        # 3. Tracker (depends on EventBus + Storage)
        self._tracker = Tracker(self._event_bus, self._storage)
        await self._tracker.start()

        # 4. Blob storage + attachments
        self._blob_storage = self._external_blobs or self._build_blob_storage()
        self._attachments = AttachmentService(self._blob_storage)
        logger.info("Blob storage initialized (%s)", type(self._blob_storage).__name__)

        # 5. Messaging components (depend on Storage + EventBus)
        self._resolver = ConversationResolver(self._storage, self._event_bus)
        self._messages = MessageStore(self._storage, self._event_bus)
        self._unread = UnreadTracker(self._storage, self._event_bus)
        self._directory = ProfileDirectory(
            self._storage, support_email=self.settings.support_email
        )

        # 6. Backend facade
        self._chat = ChatService(
            resolver=self._resolver,
            messages=self._messages,
            attachments=self._attachments,
            unread=self._unread,
            identity=self._directory,
        )
        logger.info("All components initialized successfully")

    def _build_blob_storage(self) -> IBlobStorage:
        if self.settings.blob_backend == "http":
            if not self.settings.storage_api_url:
                raise RuntimeError("BLOB_BACKEND=http requires STORAGE_API_URL")
            return HttpBlobStorage(
                self.settings.storage_api_url,
                self.settings.storage_bucket,
                api_key=self.settings.storage_api_key,
            )
        return LocalBlobStorage(
            resolve_blobs_dir(self.settings.blobs_dir),
            self.settings.blob_public_base_url,
        )

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if isinstance(self._blob_storage, HttpBlobStorage) and not self._external_blobs:
            await self._blob_storage.close()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")
        self._chat = None

    async def reset(self) -> None:
        """Reset data between test runs."""
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

    @property
    def is_started(self) -> bool:
        return self._chat is not None

    def _require(self, component):
        if component is None:
            raise RuntimeError("Application not started")
        return component

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        return self._require(self._storage)

    @property
    def event_bus(self) -> EventBus:
        return self._require(self._event_bus)

    @property
    def tracker(self) -> ITracker:
        return self._require(self._tracker)

    @property
    def blob_storage(self) -> IBlobStorage:
        return self._require(self._blob_storage)

    @property
    def attachments(self) -> IAttachmentService:
        return self._require(self._attachments)

    @property
    def resolver(self) -> IConversationResolver:
        return self._require(self._resolver)

    @property
    def messages(self) -> IMessageStore:
        return self._require(self._messages)

    @property
    def unread(self) -> UnreadTracker:
        return self._require(self._unread)

    @property
    def directory(self) -> ProfileDirectory:
        return self._require(self._directory)

    @property
    def chat(self) -> ChatService:
        """In-process chat backend."""
        return self._require(self._chat)
