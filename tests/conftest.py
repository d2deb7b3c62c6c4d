"""Pytest configuration and fixtures."""

import asyncio

import httpx
import pytest
import pytest_asyncio

from estate_chat.api import create_fastapi_app
from estate_chat.app import Application
from estate_chat.attachments import AttachmentService
from estate_chat.blobs import LocalBlobStorage
from estate_chat.config import Settings
from estate_chat.conversations import ConversationResolver
from estate_chat.event_bus import EventBus
from estate_chat.identity import ProfileDirectory
from estate_chat.messaging import MessageStore
from estate_chat.models import Participant, Role
from estate_chat.session import ChatService
from estate_chat.storage import Storage
from estate_chat.tracker import Tracker
from estate_chat.unread import UnreadTracker


class FlakyBackend:
    """Delegates to a real backend, injecting failures and delays per call."""

    def __init__(self, inner):
        self._inner = inner
        self.failures: dict[str, list[Exception]] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[str] = []

    def fail(self, name: str, error: Exception, times: int = 1) -> None:
        self.failures.setdefault(name, []).extend([error] * times)

    def delay(self, name: str, seconds: float) -> None:
        self.delays[name] = seconds

    def count(self, name: str) -> int:
        return self.calls.count(name)

    def __getattr__(self, name):
        target = getattr(self._inner, name)

        async def call(*args, **kwargs):
            self.calls.append(name)
            if name in self.delays:
                await asyncio.sleep(self.delays[name])
            pending = self.failures.get(name)
            if pending:
                raise pending.pop(0)
            return await target(*args, **kwargs)

        return call


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def event_bus():
    """Create EventBus."""
    return EventBus()


@pytest_asyncio.fixture
async def tracker(storage, event_bus):
    """Create Tracker subscribed to the event bus."""
    tr = Tracker(event_bus=event_bus, storage=storage)
    await tr.start()
    return tr


@pytest.fixture
def blob_storage(tmp_path):
    """Local blob storage in a temporary directory."""
    return LocalBlobStorage(tmp_path / "blobs", "http://test/api/attachments/content")


@pytest.fixture
def resolver(storage, event_bus):
    return ConversationResolver(storage, event_bus)


@pytest.fixture
def message_store(storage, event_bus):
    return MessageStore(storage, event_bus)


@pytest.fixture
def unread(storage, event_bus):
    return UnreadTracker(storage, event_bus)


@pytest.fixture
def directory(storage):
    return ProfileDirectory(storage)


@pytest.fixture
def attachments(blob_storage):
    return AttachmentService(blob_storage)


@pytest.fixture
def chat_service(resolver, message_store, attachments, unread, directory):
    """In-process chat backend over in-memory storage."""
    return ChatService(
        resolver=resolver,
        messages=message_store,
        attachments=attachments,
        unread=unread,
        identity=directory,
    )


@pytest_asyncio.fixture
async def profiles(directory):
    """Two regular users and one administrator."""
    users = {
        "u1": Participant(id="u1", full_name="Alice Renter", email="alice@example.com"),
        "u2": Participant(id="u2", email="bob@example.com"),
        "admin": Participant(
            id="admin", role=Role.ADMIN, full_name="Carol Staff", email="support@example.com"
        ),
    }
    for profile in users.values():
        await directory.save_profile(profile)
    return users


@pytest.fixture
def backend(chat_service):
    """ChatService wrapped so tests can inject failures and delays."""
    return FlakyBackend(chat_service)


@pytest_asyncio.fixture
async def application(tmp_path):
    """Started Application over in-memory storage."""
    app = Application(
        db_path=":memory:",
        settings=Settings(
            blobs_dir=str(tmp_path / "blobs"),
            blob_public_base_url="http://test/api/attachments/content",
        ),
    )
    await app.start()
    yield app
    await app.stop()


@pytest_asyncio.fixture
async def api_client(application):
    """httpx client talking to the FastAPI app in-process."""
    fastapi_app = create_fastapi_app(application)
    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
