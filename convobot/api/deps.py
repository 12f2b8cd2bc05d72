import logging
from functools import lru_cache

from convobot.config import get_settings
from convobot.services.bot_registry import BotRegistry
from convobot.services.chat_turn import ChatTurnHandler
from convobot.services.conversation_store import ConversationStore
from convobot.services.demo_data import seed_demo_data
from convobot.services.document_store import (
    DocumentStore,
    FirestoreDocumentStore,
    InMemoryDocumentStore,
)
from convobot.services.llm_service import LLMService
from convobot.services.response_generator import ResponseGenerator
from convobot.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

settings = get_settings() # Get settings at module level


# --- Storage Dependencies ---

@lru_cache()
def get_document_store() -> DocumentStore:
    """Provides the configured document store backend."""
    if settings.storage_backend == "memory":
        logger.info("Initializing InMemoryDocumentStore...")
        store = InMemoryDocumentStore()
        if settings.seed_demo_data:
            seed_demo_data(store)
        return store
    logger.info("Initializing FirestoreDocumentStore...")
    return FirestoreDocumentStore(project_id=settings.gcp_project_id, db_name=settings.firestore_database)


@lru_cache()
def get_conversation_store() -> ConversationStore:
    retry = RetryPolicy(
        attempts=settings.store_retry_attempts,
        base_delay=settings.store_retry_base_delay,
    )
    return ConversationStore(get_document_store(), retry=retry)


@lru_cache()
def get_bot_registry() -> BotRegistry:
    return BotRegistry(get_conversation_store())


# --- Generation Dependencies ---

@lru_cache()
def get_llm_service() -> LLMService:
    """Provides an LLMService instance."""
    logger.info("Initializing LLMService...")
    return LLMService(settings)


@lru_cache()
def get_response_generator() -> ResponseGenerator:
    return ResponseGenerator(
        get_llm_service(),
        max_user_message_chars=settings.max_user_message_chars,
        max_response_chars=settings.max_response_chars,
    )


@lru_cache()
def get_chat_turn_handler() -> ChatTurnHandler:
    return ChatTurnHandler(
        get_conversation_store(),
        get_response_generator(),
        max_history_messages=settings.max_history_messages,
    )
