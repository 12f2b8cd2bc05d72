"""Persistence of chat messages, chat sessions and bot lookups.

All calls are blocking and go through one :class:`RetryPolicy`; callers on
the event loop run them in a worker thread.
"""

import datetime as _dt
import hashlib
import logging
from typing import Any, Dict, List, Optional

from google.api_core.exceptions import AlreadyExists

from convobot.models.domain import AnalyticsSummary, BotProfile, ChatMessage, ChatSession
from convobot.services.document_store import DocumentStore, new_document_id
from convobot.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

BOTS_COLLECTION = "bots"
MESSAGES_COLLECTION = "chat_messages"
SESSIONS_COLLECTION = "chat_sessions"


def session_document_id(bot_id: str, session_id: str) -> str:
    """Deterministic document key for a (bot, session) pair.

    Session ids come from the browser and may contain characters Firestore
    does not allow in document ids, so the key is a digest.
    """
    return hashlib.sha256(f"{bot_id}\x1f{session_id}".encode("utf-8")).hexdigest()[:40]


def _valid_document_id(doc_id: Optional[str]) -> bool:
    return bool(doc_id) and "/" not in doc_id and doc_id not in (".", "..") and not (
        doc_id.startswith("__") and doc_id.endswith("__")
    )


class ConversationStore:
    """Repository for chat data shared by the chat turn handler and analytics."""

    def __init__(self, store: DocumentStore, retry: Optional[RetryPolicy] = None) -> None:
        self.store = store
        self.retry = retry or RetryPolicy()

    # --------------------------------------------------------------------- #
    # Messages
    # --------------------------------------------------------------------- #
    def save_message(self, message: ChatMessage) -> str:
        """Append one message and return its id.

        The id is assigned before the write so a retried write overwrites the
        same document instead of duplicating it.
        """
        message_id = message.id or new_document_id()
        data = message.to_document()
        self.retry.run(
            "save_message",
            lambda: self.store.set(MESSAGES_COLLECTION, message_id, data),
        )
        message.id = message_id
        return message_id

    def get_history(self, bot_id: str, session_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        """Messages of one session in ascending timestamp order; ``limit`` keeps the newest."""
        filters = [("botId", "==", bot_id), ("sessionId", "==", session_id)]
        if limit:
            docs = self.retry.run(
                "get_history",
                lambda: self.store.query(
                    MESSAGES_COLLECTION, filters, order_by="timestamp", descending=True, limit=limit
                ),
            )
            docs.reverse()
        else:
            docs = self.retry.run(
                "get_history",
                lambda: self.store.query(MESSAGES_COLLECTION, filters, order_by="timestamp"),
            )
        return [ChatMessage.from_document(doc_id, data) for doc_id, data in docs]

    # --------------------------------------------------------------------- #
    # Sessions
    # --------------------------------------------------------------------- #
    def create_session(self, session: ChatSession) -> bool:
        """Create the session record; return ``False`` if it already existed."""
        doc_id = session_document_id(session.botId, session.sessionId)
        data = session.to_document()
        try:
            self.retry.run(
                "create_session",
                lambda: self.store.create(SESSIONS_COLLECTION, doc_id, data),
            )
        except AlreadyExists:
            logger.debug("Session %s for bot %s already exists", session.sessionId, session.botId)
            return False
        session.id = doc_id
        logger.info("Created chat session %s for bot %s", session.sessionId, session.botId)
        return True

    def update_session(
        self,
        bot_id: str,
        session_id: str,
        fields: Dict[str, Any],
        increments: Optional[Dict[str, int]] = None,
    ) -> None:
        """Merge ``fields`` into the session, e.g. ``{"converted": True}`` or an end time."""
        doc_id = session_document_id(bot_id, session_id)
        self.retry.run(
            "update_session",
            lambda: self.store.update(SESSIONS_COLLECTION, doc_id, fields, increments),
        )

    def get_session(self, bot_id: str, session_id: str) -> Optional[ChatSession]:
        doc_id = session_document_id(bot_id, session_id)
        data = self.retry.run("get_session", lambda: self.store.get(SESSIONS_COLLECTION, doc_id))
        return ChatSession.from_document(doc_id, data) if data is not None else None

    # --------------------------------------------------------------------- #
    # Bots
    # --------------------------------------------------------------------- #
    def get_bot(self, bot_id: str) -> Optional[BotProfile]:
        if not _valid_document_id(bot_id):
            return None
        data = self.retry.run("get_bot", lambda: self.store.get(BOTS_COLLECTION, bot_id))
        if data is None:
            return None
        return BotProfile.from_document(bot_id, data)

    # --------------------------------------------------------------------- #
    # Analytics
    # --------------------------------------------------------------------- #
    def aggregate(
        self,
        bot_id: str,
        window_days: int,
        now: Optional[_dt.datetime] = None,
    ) -> AnalyticsSummary:
        """Session/message counts and conversions for ``[now - window_days, now]``."""
        now = now or _dt.datetime.now(_dt.timezone.utc)
        since = now - _dt.timedelta(days=window_days)

        session_docs = self.retry.run(
            "aggregate_sessions",
            lambda: self.store.query(
                SESSIONS_COLLECTION,
                [("botId", "==", bot_id), ("startTime", ">=", since), ("startTime", "<=", now)],
                order_by="startTime",
                descending=True,
            ),
        )
        message_docs = self.retry.run(
            "aggregate_messages",
            lambda: self.store.query(
                MESSAGES_COLLECTION,
                [("botId", "==", bot_id), ("timestamp", ">=", since), ("timestamp", "<=", now)],
                order_by="timestamp",
                descending=True,
            ),
        )
        sessions = [ChatSession.from_document(doc_id, data) for doc_id, data in session_docs]
        messages = [ChatMessage.from_document(doc_id, data) for doc_id, data in message_docs]

        total_sessions = len(sessions)
        total_messages = len(messages)
        conversions = sum(1 for s in sessions if s.converted)

        return AnalyticsSummary(
            totalSessions=total_sessions,
            totalMessages=total_messages,
            conversions=conversions,
            conversionRate=(100.0 * conversions / total_sessions) if total_sessions else 0.0,
            averageMessagesPerSession=(total_messages / total_sessions) if total_sessions else 0.0,
            sessions=sessions,
            messages=messages,
        )
