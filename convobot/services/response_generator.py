"""Reply generation with fallback policy.

``ResponseGenerator.generate`` always returns text for a well-formed
context: completion-service failures become either a class-specific apology
or the bot's configured fallback message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from convobot.exceptions import (
    CompletionError,
    ContentRejected,
    InvalidContext,
    QuotaExceeded,
    ServiceUnavailable,
)
from convobot.models.domain import BotProfile, HistoryTurn, VisitorInfo
from convobot.services.llm_service import LLMService
from convobot.services.prompt_builder import build_prompt

logger = logging.getLogger(__name__)

GENERIC_APOLOGY = "I'm sorry, I'm having trouble responding right now."
EMPTY_RESPONSE_FALLBACK = (
    "I'm not sure how to respond to that. Could you tell me more about what you're looking for?"
)
FAILURE_FALLBACK = (
    "I'm having trouble responding right now. Can you tell me more about what you're looking for?"
)

FAILURE_MESSAGES = {
    ServiceUnavailable: "I'm experiencing technical difficulties with my AI service. Please try again later.",
    QuotaExceeded: "I'm currently experiencing high demand. Please try again in a moment.",
    ContentRejected: (
        "I can't respond to that type of message. "
        "Let's talk about how I can help you with our products or services."
    ),
}


@dataclass
class GenerationContext:
    bot: Optional[BotProfile]
    user_message: Optional[str]
    history: List[HistoryTurn] = field(default_factory=list)
    visitor_info: Optional[VisitorInfo] = None


class ResponseGenerator:
    """Builds the prompt, calls Gemini and post-processes the reply."""

    def __init__(
        self,
        llm_service: LLMService,
        max_user_message_chars: int = 1000,
        max_response_chars: int = 500,
    ) -> None:
        self.llm_service = llm_service
        self.max_user_message_chars = max_user_message_chars
        self.max_response_chars = max_response_chars

    async def generate(self, context: GenerationContext) -> str:
        if context is None or context.bot is None:
            raise InvalidContext("A bot profile is required")
        message = (context.user_message or "").strip()[: self.max_user_message_chars].strip()
        if not message:
            raise InvalidContext("The user message is empty")

        bot = context.bot
        if not self.llm_service.available:
            logger.warning("Gemini not configured, using fallback message for bot %s", bot.id)
            return bot.fallbackMessage or GENERIC_APOLOGY

        prompt = build_prompt(bot, context.history, message, context.visitor_info)

        try:
            text = await self.llm_service.complete(prompt)
        except Exception as exc:
            return self._failure_reply(bot, exc)

        text = (text or "").strip()
        if not text:
            logger.warning("Empty response from Gemini for bot %s, using fallback", bot.id)
            return bot.fallbackMessage or EMPTY_RESPONSE_FALLBACK

        return text[: self.max_response_chars].rstrip()

    @staticmethod
    def _failure_reply(bot: BotProfile, exc: Exception) -> str:
        for error_type, reply in FAILURE_MESSAGES.items():
            if isinstance(exc, error_type):
                logger.error("Generation failed for bot %s (%s): %s", bot.id, error_type.__name__, exc)
                return reply
        logger.error("Generation failed for bot %s: %s", bot.id, exc, exc_info=not isinstance(exc, CompletionError))
        return bot.fallbackMessage or FAILURE_FALLBACK
