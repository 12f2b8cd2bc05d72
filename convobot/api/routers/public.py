import logging
from pathlib import Path as FilePath

import anyio
from fastapi import APIRouter, Depends, Path
from fastapi.responses import FileResponse

from convobot.api.deps import get_chat_turn_handler, get_conversation_store
from convobot.exceptions import ConvoBotError, InternalError, NotFound
from convobot.models.domain import ChatRequest, ChatResponse, PublicBotConfig
from convobot.services.chat_turn import ChatTurnHandler
from convobot.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)

EMBED_SCRIPT = FilePath(__file__).resolve().parent.parent.parent / "static" / "embed.js"

router = APIRouter(prefix="/api/bot", tags=["public"])


@router.get("/{bot_id}/config", response_model=PublicBotConfig)
async def get_bot_config(
    bot_id: str = Path(..., title="The ID of the bot"),
    conversations: ConversationStore = Depends(get_conversation_store),
):
    """Public bot configuration for the embed script (no business-strategy fields)."""
    try:
        bot = await anyio.to_thread.run_sync(conversations.get_bot, bot_id)
    except Exception as e:
        logger.error("Error fetching bot config for %s: %s", bot_id, e, exc_info=True)
        raise InternalError() from e
    if bot is None:
        raise NotFound("Bot not found")
    return bot.public_config()


@router.post("/{bot_id}/chat", response_model=ChatResponse)
async def post_chat_turn(
    body: ChatRequest,
    bot_id: str = Path(..., title="The ID of the bot"),
    handler: ChatTurnHandler = Depends(get_chat_turn_handler),
):
    """
    Saves the visitor's message, generates the bot's reply, saves it and
    returns the reply text with the id of the saved visitor message.
    """
    try:
        result = await handler.handle_turn(bot_id, body.sessionId, body.message, body.visitorInfo)
    except ConvoBotError:
        raise
    except Exception as e:
        logger.error("Error in chat turn for bot %s: %s", bot_id, e, exc_info=True)
        raise InternalError() from e
    return ChatResponse(response=result.response_text, messageId=result.user_message_id)


embed_router = APIRouter(tags=["widget"])


@embed_router.get("/embed.js", include_in_schema=False)
async def get_embed_script():
    """The self-initialising chat widget; include with ``<script src=".../embed.js" data-bot-id="...">``."""
    return FileResponse(
        EMBED_SCRIPT,
        media_type="application/javascript",
        headers={"Cache-Control": "public, max-age=300"},
    )
