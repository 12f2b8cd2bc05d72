"""FastAPI entrypoint - thin layer that wires together services & routes.

  • config.py          - env/config
  • api/deps.py        - service providers (store, Gemini, turn handler)
  • api/routers/       - public widget API and the owner API
  • static/embed.js    - the embeddable widget
"""

import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from convobot import __version__
from convobot.api.deps import get_llm_service
from convobot.api.errors import register_exception_handlers
from convobot.config import get_settings
from convobot.models.domain import LLMHealth
from convobot.services.llm_service import LLMService
from convobot.utils.logging import configure_logging
from .routers import bots, public

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title="Conversion Bot Backend",
    description="Public chat API for the embeddable widget and the bot owner API.",
    version=__version__,
)

# The widget runs on arbitrary customer sites
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*", "Authorization", "X-User-Authorization"],
)

register_exception_handlers(app)

app.include_router(public.router)
app.include_router(public.embed_router)
app.include_router(bots.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/health/llm", response_model=LLMHealth)
async def llm_health(llm_service: LLMService = Depends(get_llm_service)):
    """Whether Gemini is configured and answers a test prompt."""
    reachable = await llm_service.check_connection()
    logger.info("LLM health check: configured=%s reachable=%s", llm_service.available, reachable)
    return LLMHealth(configured=llm_service.available, reachable=reachable)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
