import pytest
from fastapi.testclient import TestClient

from messenger.config import Settings
from messenger.errors import StorageError
from messenger.main import create_app
from messenger.storage import MessageStore, MemoryMessageStore


class FailingStore(MessageStore):
    """Store whose backing database is unreachable."""
    kind = "failing"

    async def save(self, message):
        raise StorageError("save", "connection refused")

    async def list(self, chat_id):
        raise StorageError("list", "connection refused")

    async def clear(self, chat_id):
        raise StorageError("clear", "connection refused")


class FakeWebSocket:
    def __init__(self, fail=False):
        self.accepted = False
        self.sent = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(database_url=None, frontend_url="*")


@pytest.fixture
def client(settings):
    app = create_app(settings, store=MemoryMessageStore())
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def failing_client(settings):
    app = create_app(settings, store=FailingStore())
    with TestClient(app) as test_client:
        yield test_client
