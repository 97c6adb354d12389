"""Shared test fixtures for backend tests."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from branchchat.core.errors import ProviderError
from branchchat.services.completion import BaseCompletionClient, get_completion_client
from branchchat.services.store import ConversationStore

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


class FakeCompletion(BaseCompletionClient):
    """Completion client returning canned replies and recording prompts."""

    def __init__(self, reply: str = "Hi there", error: str | None = None):
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise ProviderError(self.error)
        return self.reply


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import branchchat.models.conversation  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def store():
    return ConversationStore(test_engine)


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def client(completion):
    """FastAPI TestClient with all external deps patched."""
    with patch("branchchat.core.database.engine", test_engine):
        from branchchat.main import app

        app.dependency_overrides[get_completion_client] = lambda: completion

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()


@pytest.fixture
def engine():
    return test_engine
