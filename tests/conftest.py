"""Shared test fixtures."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from bellpull.bot.delivery import DeliveryEngine
from bellpull.db import Database
from bellpull.llm.client import LLMClient
from bellpull.memory.store import MemoryStore
from bellpull.messages.store import MessageStore


def _make_response(
    text: str | None = "Default mock response",
    *,
    stop_reason: str = "end_turn",
    input_tokens: int = 100,
    output_tokens: int = 50,
    content: list | None = None,
) -> SimpleNamespace:
    """Build an object shaped like ``anthropic.types.Message``."""
    if content is None:
        content = [SimpleNamespace(type="text", text=text)] if text is not None else []
    return SimpleNamespace(
        model="claude-haiku-3-5-20241022",
        stop_reason=stop_reason,
        content=content,
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


@pytest.fixture
def make_response():
    """Factory for fake Messages API responses."""
    return _make_response


@pytest.fixture
def database(tmp_path) -> Database:
    """A Database backed by a temp file."""
    return Database(db_path=tmp_path / "test.db")


@pytest.fixture
def memory_store(database: Database) -> MemoryStore:
    return MemoryStore(db=database, timezone="America/New_York")


@pytest.fixture
def message_store(database: Database) -> MessageStore:
    return MessageStore(db=database)


@pytest.fixture
def mock_bot() -> AsyncMock:
    """A mock telegram.Bot."""
    bot = AsyncMock()
    bot.send_message = AsyncMock(return_value=SimpleNamespace(message_id=1))
    return bot


@pytest.fixture
def delivery(mock_bot: AsyncMock, message_store: MessageStore) -> DeliveryEngine:
    return DeliveryEngine(mock_bot, message_store, chunk_delay=0, parse_mode="Markdown")


@pytest.fixture
def anthropic_client() -> MagicMock:
    """A fake AsyncAnthropic whose messages.create returns the default response."""
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=_make_response())
    return client


@pytest.fixture
def llm(anthropic_client: MagicMock) -> LLMClient:
    return LLMClient(
        anthropic_client,
        model="claude-haiku-3-5-20241022",
        max_tokens=1024,
        temperature=0.7,
    )
