"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from roomchat.chat.hub import ChatHub, set_hub
from roomchat.main import app
from roomchat.store import ChatStore


class FakeWebSocket:
    """Stand-in for a WebSocket that records every JSON frame sent to it."""

    def __init__(self, fail: bool = False) -> None:
        self.sent = []
        self.fail = fail

    async def send_json(self, data: dict) -> None:
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)

    def of_type(self, event_type: str) -> list:
        return [e for e in self.sent if e["type"] == event_type]


@pytest.fixture
def store():
    """A ChatStore backed by an in-memory DuckDB database."""
    chat_store = ChatStore(db_path=":memory:")
    yield chat_store
    chat_store.close()


@pytest.fixture
def hub(store):
    """Install a hub around the in-memory store for the duration of a test."""
    chat_hub = ChatHub(store)
    set_hub(chat_hub)
    yield chat_hub
    set_hub(None)


@pytest.fixture
def api_client(hub):
    """Provide a TestClient for the main FastAPI app.

    Entered as a context manager so every WebSocket opened by a test shares
    one event loop, as connections do in the real server.
    """
    with TestClient(app) as test_client:
        yield test_client
