import logging
from typing import List

import anyio
from fastapi import APIRouter, Depends, Path, Query, status

from convobot.api.auth import get_owner_id
from convobot.api.deps import get_bot_registry, get_conversation_store
from convobot.models.domain import (
    AnalyticsSummary,
    BotProfile,
    BotProfileCreate,
    BotProfileUpdate,
    ChatMessage,
)
from convobot.services.bot_registry import BotRegistry
from convobot.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bots", tags=["bots"])


@router.post("", response_model=BotProfile, status_code=status.HTTP_201_CREATED)
async def create_bot(
    payload: BotProfileCreate,
    owner_id: str = Depends(get_owner_id),
    registry: BotRegistry = Depends(get_bot_registry),
):
    """Creates a new bot owned by the caller."""
    return await anyio.to_thread.run_sync(registry.create_bot, owner_id, payload)


@router.get("", response_model=List[BotProfile])
async def list_bots(
    owner_id: str = Depends(get_owner_id),
    registry: BotRegistry = Depends(get_bot_registry),
):
    """Lists the caller's bots, newest first."""
    return await anyio.to_thread.run_sync(registry.list_bots, owner_id)


@router.get("/{bot_id}", response_model=BotProfile)
async def get_bot(
    bot_id: str = Path(..., title="The ID of the bot"),
    owner_id: str = Depends(get_owner_id),
    registry: BotRegistry = Depends(get_bot_registry),
):
    return await anyio.to_thread.run_sync(registry.get_owned_bot, bot_id, owner_id)


@router.patch("/{bot_id}", response_model=BotProfile)
async def update_bot(
    update: BotProfileUpdate,
    bot_id: str = Path(..., title="The ID of the bot"),
    owner_id: str = Depends(get_owner_id),
    registry: BotRegistry = Depends(get_bot_registry),
):
    """Applies a partial update; unknown fields are rejected with 400."""
    return await anyio.to_thread.run_sync(registry.update_bot, bot_id, owner_id, update)


@router.delete("/{bot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bot(
    bot_id: str = Path(..., title="The ID of the bot to delete"),
    owner_id: str = Depends(get_owner_id),
    registry: BotRegistry = Depends(get_bot_registry),
):
    await anyio.to_thread.run_sync(registry.delete_bot, bot_id, owner_id)
    logger.info("Bot %s deleted by owner %s", bot_id, owner_id)


@router.get("/{bot_id}/analytics", response_model=AnalyticsSummary)
async def get_bot_analytics(
    bot_id: str = Path(..., title="The ID of the bot"),
    days: int = Query(30, ge=1, le=365, description="Window size in days"),
    owner_id: str = Depends(get_owner_id),
    registry: BotRegistry = Depends(get_bot_registry),
    conversations: ConversationStore = Depends(get_conversation_store),
):
    """Session/message counts and conversion rate over the last ``days`` days."""
    await anyio.to_thread.run_sync(registry.get_owned_bot, bot_id, owner_id)
    return await anyio.to_thread.run_sync(conversations.aggregate, bot_id, days)


@router.get("/{bot_id}/sessions/{session_id}/messages", response_model=List[ChatMessage])
async def get_session_messages(
    bot_id: str = Path(..., title="The ID of the bot"),
    session_id: str = Path(..., title="The visitor session ID"),
    owner_id: str = Depends(get_owner_id),
    registry: BotRegistry = Depends(get_bot_registry),
    conversations: ConversationStore = Depends(get_conversation_store),
):
    """The session transcript in chronological order."""
    await anyio.to_thread.run_sync(registry.get_owned_bot, bot_id, owner_id)
    return await anyio.to_thread.run_sync(conversations.get_history, bot_id, session_id)
