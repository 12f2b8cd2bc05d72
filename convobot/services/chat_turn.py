"""One visitor turn: validate, persist, generate, persist, reply."""

from __future__ import annotations

import datetime as _dt
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, TypeVar

import anyio

from convobot.exceptions import BadRequest, NotFound, PersistenceError
from convobot.models.domain import BotProfile, ChatMessage, ChatSession, HistoryTurn, VisitorInfo
from convobot.services.conversation_store import ConversationStore
from convobot.services.response_generator import GENERIC_APOLOGY, GenerationContext, ResponseGenerator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class TurnResult:
    response_text: str
    user_message_id: str


class ChatTurnHandler:
    """Orchestrates a single request/response cycle for the public chat endpoint."""

    def __init__(
        self,
        conversations: ConversationStore,
        generator: ResponseGenerator,
        max_history_messages: int = 10,
    ) -> None:
        self.conversations = conversations
        self.generator = generator
        self.max_history_messages = max_history_messages

    @staticmethod
    async def _run(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        # Store calls block on network I/O (and on retry backoff); keep them off the event loop
        return await anyio.to_thread.run_sync(functools.partial(fn, *args, **kwargs))

    async def handle_turn(
        self,
        bot_id: str,
        session_id: Optional[str],
        message: Optional[str],
        visitor_info: Optional[VisitorInfo] = None,
    ) -> TurnResult:
        if not message or not message.strip() or not session_id:
            raise BadRequest("Message and sessionId are required")

        # 1. Bot lookup
        bot: Optional[BotProfile] = await self._run(self.conversations.get_bot, bot_id)
        if bot is None or not bot.isActive:
            raise NotFound("Bot not found or inactive")

        # 2. Save user message
        user_message = ChatMessage(
            botId=bot_id,
            sessionId=session_id,
            message=message,
            sender="user",
            visitorInfo=visitor_info,
        )
        user_message_id = await self._run(self.conversations.save_message, user_message)

        # 3. Ensure the session record exists (best effort)
        await self._ensure_session(bot_id, session_id, user_message.timestamp, visitor_info)

        # 3b. Earlier turns of this session, oldest first
        history = await self._load_history(bot_id, session_id, user_message_id)

        # 4. Generate
        fallback = bot.fallbackMessage or GENERIC_APOLOGY
        try:
            response_text = await self.generator.generate(
                GenerationContext(
                    bot=bot,
                    user_message=message,
                    history=history,
                    visitor_info=visitor_info,
                )
            )
        except Exception as e:
            logger.error("Error generating bot response for bot %s: %s", bot_id, e, exc_info=True)
            response_text = fallback
        if not response_text:
            response_text = fallback

        # 5. Save bot message
        written = 1
        bot_message = ChatMessage(botId=bot_id, sessionId=session_id, message=response_text, sender="bot")
        try:
            await self._run(self.conversations.save_message, bot_message)
            written += 1
        except PersistenceError as e:
            # The visitor still gets the reply; the transcript is missing this message
            logger.error(
                "Bot reply for bot %s session %s was not persisted: %s", bot_id, session_id, e
            )

        await self._record_activity(bot_id, session_id, written, bot_message.timestamp)

        return TurnResult(response_text=response_text, user_message_id=user_message_id)

    async def _ensure_session(
        self,
        bot_id: str,
        session_id: str,
        started_at: _dt.datetime,
        visitor_info: Optional[VisitorInfo],
    ) -> None:
        session = ChatSession(
            botId=bot_id,
            sessionId=session_id,
            startTime=started_at,
            lastActivity=started_at,
            messageCount=0,
            converted=False,
            visitorInfo=visitor_info,
        )
        try:
            await self._run(self.conversations.create_session, session)
        except PersistenceError as e:
            logger.warning("Could not create session %s for bot %s: %s", session_id, bot_id, e)

    async def _load_history(self, bot_id: str, session_id: str, current_message_id: str) -> List[HistoryTurn]:
        if self.max_history_messages <= 0:
            return []
        try:
            messages = await self._run(
                self.conversations.get_history, bot_id, session_id, self.max_history_messages + 1
            )
        except PersistenceError as e:
            logger.warning("Could not load history for session %s: %s", session_id, e)
            return []
        earlier = [m for m in messages if m.id != current_message_id][-self.max_history_messages:]
        return [HistoryTurn.from_message(m) for m in earlier]

    async def _record_activity(
        self, bot_id: str, session_id: str, written: int, at: _dt.datetime
    ) -> None:
        try:
            await self._run(
                self.conversations.update_session,
                bot_id,
                session_id,
                {"lastActivity": at},
                {"messageCount": written},
            )
        except PersistenceError as e:
            logger.warning("Could not update session %s for bot %s: %s", session_id, bot_id, e)
