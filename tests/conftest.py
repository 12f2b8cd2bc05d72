"""
Pytest configuration for convobot tests.
Forces the in-memory store and an unconfigured Gemini client before the app is imported.
"""

import os

# Must be set before any convobot imports (settings are cached at import time)
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["GEMINI_API_KEY"] = ""
os.environ["GENAI_USE_VERTEX"] = "false"
os.environ["STORE_RETRY_BASE_DELAY"] = "0"

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from convobot.api import deps
from convobot.api.auth import get_owner_id
from convobot.api.main import app
from convobot.models.domain import BotProfile
from convobot.services.bot_registry import BotRegistry
from convobot.services.chat_turn import ChatTurnHandler
from convobot.services.conversation_store import BOTS_COLLECTION, ConversationStore
from convobot.services.document_store import InMemoryDocumentStore
from convobot.services.response_generator import ResponseGenerator
from convobot.utils.retry import RetryPolicy

from tests.factories import OWNER_ID, FakeLLM, make_bot


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture
def no_sleep_retry():
    return RetryPolicy(attempts=3, base_delay=0.01, sleep=lambda seconds: None)


@pytest.fixture
def conversations(memory_store, no_sleep_retry):
    return ConversationStore(memory_store, retry=no_sleep_retry)


@pytest.fixture
def add_bot(memory_store):
    """Write a bot profile straight into the store."""

    def _add(bot: Optional[BotProfile] = None, **overrides) -> BotProfile:
        bot = bot or make_bot(**overrides)
        memory_store.set(BOTS_COLLECTION, bot.id, bot.to_document())
        return bot

    return _add


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def generator(fake_llm):
    return ResponseGenerator(fake_llm)


@pytest.fixture
def turn_handler(conversations, generator):
    return ChatTurnHandler(conversations, generator, max_history_messages=10)


@pytest.fixture
def client(conversations, turn_handler, fake_llm):
    """TestClient wired to the in-memory store and the fake completion service."""
    app.dependency_overrides[deps.get_conversation_store] = lambda: conversations
    app.dependency_overrides[deps.get_bot_registry] = lambda: BotRegistry(conversations)
    app.dependency_overrides[deps.get_chat_turn_handler] = lambda: turn_handler
    app.dependency_overrides[deps.get_llm_service] = lambda: fake_llm
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def owner_client(client):
    """Same client, authenticated as OWNER_ID."""
    app.dependency_overrides[get_owner_id] = lambda: OWNER_ID
    return client
