"""Prompt assembly for the sales/support assistant.

``build_prompt`` is pure: the same bot, history, message and visitor context
always produce the same text. Every interpolated value is clipped so the
prompt never grows past ``MAX_PROMPT_CHARS``; when it would, the oldest
history turns are dropped first.
"""

from typing import List, Optional, Sequence

from convobot.models.domain import BotProfile, HistoryTurn, VisitorInfo

SHORT_FIELD_CHARS = 500
LONG_FIELD_CHARS = 2000
USER_MESSAGE_CHARS = 1000
VISITOR_FIELD_CHARS = 300
HISTORY_TURN_CHARS = 1000
MAX_PROMPT_CHARS = 24_000

NO_HISTORY = "No previous conversation."
UNKNOWN = "Unknown"
RESPONSE_WORD_LIMIT = 200


def _clip(value: Optional[str], limit: int) -> str:
    return (value or "").strip()[:limit]


def format_chat_history(history: Sequence[HistoryTurn]) -> str:
    if not history:
        return NO_HISTORY
    return "\n".join(
        f"{turn.role.upper()}: {_clip(turn.text, HISTORY_TURN_CHARS)}" for turn in history
    )


def create_system_prompt(bot: BotProfile) -> str:
    name = _clip(bot.businessName, SHORT_FIELD_CHARS)
    goals = _clip(bot.conversationGoals, SHORT_FIELD_CHARS)
    tone = _clip(bot.brandTone, SHORT_FIELD_CHARS)

    return f"""You are an AI sales assistant for {name}. Here's your business context:

BUSINESS INFORMATION:
- Business Name: {name}
- Business Type: {_clip(bot.businessType, SHORT_FIELD_CHARS)}
- Description: {_clip(bot.businessDescription, LONG_FIELD_CHARS)}
- Website: {_clip(bot.website, SHORT_FIELD_CHARS)}
- Target Audience: {_clip(bot.targetAudience, LONG_FIELD_CHARS)}
- Key Products/Services: {_clip(bot.keyProducts, LONG_FIELD_CHARS)}

CONVERSATION GOALS: {goals}

BRAND TONE: {tone}

CUSTOM INSTRUCTIONS: {_clip(bot.customInstructions, LONG_FIELD_CHARS)}

GUIDELINES:
1. Always stay in character as a representative of {name}
2. Be helpful, friendly, and professional
3. Focus on understanding the visitor's needs and how your business can help
4. Ask qualifying questions to understand their requirements better
5. When appropriate, try to capture their contact information
6. If you don't know something specific, be honest but redirect to how you can help
7. Keep responses concise but informative (2-3 sentences max usually)
8. Always try to move the conversation toward your business goals: {goals}
9. Use the brand tone: {tone}
10. If the user asks about pricing, competition, or technical details you're unsure about, suggest they speak with a human team member

Remember: Your goal is to be helpful and build trust while guiding visitors toward {goals}."""


def _assemble(system_prompt: str, history_text: str, message: str, page: str, user_agent: str,
              name: str, goals: str) -> str:
    return f"""{system_prompt}

CONVERSATION HISTORY:
{history_text}

CURRENT USER MESSAGE: {message}

VISITOR CONTEXT:
- Current page: {page}
- User agent: {user_agent}

Please respond as the AI assistant for {name}. Keep your response conversational, helpful, and focused on the business goals. Always try to guide the conversation toward {goals}.

IMPORTANT: Keep responses under {RESPONSE_WORD_LIMIT} words and be direct and helpful."""


def build_prompt(
    bot: BotProfile,
    history: Sequence[HistoryTurn],
    user_message: str,
    visitor_info: Optional[VisitorInfo] = None,
) -> str:
    """Return the single text prompt sent to the completion service."""
    system_prompt = create_system_prompt(bot)
    message = _clip(user_message, USER_MESSAGE_CHARS)
    page = _clip(visitor_info.page if visitor_info else None, VISITOR_FIELD_CHARS) or UNKNOWN
    user_agent = _clip(visitor_info.userAgent if visitor_info else None, VISITOR_FIELD_CHARS) or UNKNOWN
    name = _clip(bot.businessName, SHORT_FIELD_CHARS)
    goals = _clip(bot.conversationGoals, SHORT_FIELD_CHARS)

    turns: List[HistoryTurn] = list(history)
    while True:
        prompt = _assemble(system_prompt, format_chat_history(turns), message, page, user_agent, name, goals)
        if len(prompt) <= MAX_PROMPT_CHARS or not turns:
            return prompt
        turns.pop(0)
