"""Общие фикстуры тестов: временное хранилище, фейковый Telegram, HTTP-клиент."""

import os
import tempfile

# Настройки читаются при импорте пакета, поэтому окружение готовим до импортов chatdesk
os.environ["DATABASE_PATH"] = os.path.join(tempfile.mkdtemp(prefix="chatdesk-tests-"), "test-store.db")
os.environ["OPENAI_API_KEY"] = ""
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["ADMIN_TELEGRAM_ID"] = ""
os.environ["PUBLIC_URL"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from chatdesk.main import create_app
from chatdesk.storage import AdminSessionStore, AnalyticsCounters, LockedFileStore, MessageLog

ADMIN_ID = "999"


class FakeClock:
    """Управляемые часы в миллисекундах."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeSender:
    """Запоминает отправленные сообщения вместо Telegram."""

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.sent: list[tuple[str, str]] = []

    async def send_message(self, chat_id, text: str) -> bool:
        self.sent.append((str(chat_id), text))
        return self.ok

    async def close(self) -> None:
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    store = LockedFileStore(tmp_path / "store.db")
    store.ensure_initialized()
    return store


@pytest.fixture
def message_log(store):
    return MessageLog(store)


@pytest.fixture
def analytics(store):
    return AnalyticsCounters(store)


@pytest.fixture
def sessions(store, clock):
    return AdminSessionStore(store, clock=clock)


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def app(tmp_path, sender):
    return create_app(
        database_path=str(tmp_path / "app-store.db"),
        knowledge_base_path=None,
        completion=None,
        telegram=sender,
        admin_telegram_id=ADMIN_ID,
    )


@pytest_asyncio.fixture
async def client(app):
    """Async httpx client using ASGI transport, no live server needed."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
