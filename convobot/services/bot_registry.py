"""Owner-facing CRUD for bot profiles (``bots`` collection)."""

import datetime as _dt
import logging
from typing import List, Optional

from convobot.exceptions import NotFound
from convobot.models.domain import BotProfile, BotProfileCreate, BotProfileUpdate
from convobot.services.conversation_store import BOTS_COLLECTION, ConversationStore
from convobot.services.document_store import new_document_id

logger = logging.getLogger(__name__)


class BotRegistry:
    """Create, list, edit and delete the bots owned by a user."""

    def __init__(self, conversations: ConversationStore) -> None:
        self.conversations = conversations
        self.store = conversations.store
        self.retry = conversations.retry

    def create_bot(self, owner_id: str, payload: BotProfileCreate) -> BotProfile:
        now = _dt.datetime.now(_dt.timezone.utc)
        bot = BotProfile(
            **payload.model_dump(),
            id=new_document_id(),
            userId=owner_id,
            createdAt=now,
            lastModified=now,
        )
        data = bot.to_document()
        self.retry.run("create_bot", lambda: self.store.create(BOTS_COLLECTION, bot.id, data))
        logger.info("Created bot %s for owner %s", bot.id, owner_id)
        return bot

    def list_bots(self, owner_id: str) -> List[BotProfile]:
        docs = self.retry.run(
            "list_bots",
            lambda: self.store.query(
                BOTS_COLLECTION, [("userId", "==", owner_id)], order_by="createdAt", descending=True
            ),
        )
        return [BotProfile.from_document(doc_id, data) for doc_id, data in docs]

    def get_owned_bot(self, bot_id: str, owner_id: str) -> BotProfile:
        """Return the bot if it exists and belongs to ``owner_id``; otherwise ``NotFound``."""
        bot: Optional[BotProfile] = self.conversations.get_bot(bot_id)
        # Someone else's bot is indistinguishable from a missing one
        if bot is None or bot.userId != owner_id:
            raise NotFound("Bot not found")
        return bot

    def update_bot(self, bot_id: str, owner_id: str, update: BotProfileUpdate) -> BotProfile:
        bot = self.get_owned_bot(bot_id, owner_id)
        updated = update.apply_to(bot)
        data = updated.to_document()
        self.retry.run("update_bot", lambda: self.store.set(BOTS_COLLECTION, bot_id, data))
        logger.info("Updated bot %s (%s)", bot_id, ", ".join(sorted(update.model_fields_set)) or "no fields")
        return updated

    def delete_bot(self, bot_id: str, owner_id: str) -> None:
        self.get_owned_bot(bot_id, owner_id)
        self.retry.run("delete_bot", lambda: self.store.delete(BOTS_COLLECTION, bot_id))
        logger.info("Deleted bot %s", bot_id)
