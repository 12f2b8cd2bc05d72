"""Demo bots and a sample conversation for local development."""

import datetime as _dt
import logging
from typing import List, Optional

from convobot.models.domain import BotProfile, BotTheme, ChatMessage, ChatSession, VisitorInfo
from convobot.services.conversation_store import (
    BOTS_COLLECTION,
    MESSAGES_COLLECTION,
    SESSIONS_COLLECTION,
    session_document_id,
)
from convobot.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

DEMO_USER_ID = "demo-user"

_DESKTOP_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def demo_bots(now: _dt.datetime) -> List[BotProfile]:
    return [
        BotProfile(
            id="demo-bot-1",
            userId=DEMO_USER_ID,
            botName="Demo Sales Assistant",
            website="https://example.com",
            businessName="Demo Business",
            businessDescription="A sample business for demonstration purposes",
            businessType="E-commerce",
            targetAudience="Online shoppers looking for quality products",
            keyProducts="Digital products, subscriptions, and premium services",
            conversationGoals="Generate leads, provide product information, and guide users to purchase",
            brandTone="Friendly, professional, and helpful",
            customInstructions="Always be helpful and guide users toward making a purchase. "
                               "Provide detailed product information when asked.",
            welcomeMessage="Hello! Welcome to Demo Business. How can I help you find the perfect product today?",
            fallbackMessage="I didn't quite understand that. Could you please rephrase your question?",
            theme=BotTheme(primaryColor="#3B82F6", secondaryColor="#DBEAFE", fontFamily="Inter", borderRadius="8px"),
            isActive=True,
            createdAt=now - _dt.timedelta(days=5),
            lastModified=now - _dt.timedelta(days=1),
        ),
        BotProfile(
            id="demo-bot-2",
            userId=DEMO_USER_ID,
            botName="Support Helper",
            website="https://support-demo.com",
            businessName="Tech Support Co",
            businessDescription="Providing technical support and customer service solutions",
            businessType="SaaS",
            targetAudience="Software users needing technical assistance",
            keyProducts="Technical support, troubleshooting guides, and premium support plans",
            conversationGoals="Resolve customer issues, provide technical guidance, and reduce support ticket volume",
            brandTone="Professional, patient, and solution-oriented",
            customInstructions="Focus on solving technical problems step-by-step. "
                               "Always ask clarifying questions when needed.",
            welcomeMessage="Hi there! I'm here to help with any technical questions or issues you might have.",
            fallbackMessage="I'm not sure about that. Let me connect you with a human support agent "
                            "who can better assist you.",
            theme=BotTheme(primaryColor="#059669", secondaryColor="#D1FAE5", fontFamily="Roboto", borderRadius="12px"),
            isActive=True,
            createdAt=now - _dt.timedelta(days=10),
            lastModified=now - _dt.timedelta(days=2),
        ),
    ]


def seed_demo_data(store: DocumentStore, now: Optional[_dt.datetime] = None) -> None:
    """Write the demo bots plus one converted session into ``store``."""
    now = now or _dt.datetime.now(_dt.timezone.utc)
    bots = demo_bots(now)
    for bot in bots:
        store.set(BOTS_COLLECTION, bot.id, bot.to_document())

    visitor = VisitorInfo(page="https://example.com", userAgent=_DESKTOP_UA)
    started = now - _dt.timedelta(hours=2)
    transcript = [
        ("bot", "Hello! Welcome to Demo Business. How can I help you find the perfect product today?"),
        ("user", "I'm looking for a good laptop for work"),
        ("bot", "Great choice! For work laptops, I'd recommend looking at our business series. "
                "What type of work will you be using it for?"),
    ]
    for offset, (sender, text) in enumerate(transcript):
        message = ChatMessage(
            botId="demo-bot-1",
            sessionId="session-1",
            message=text,
            sender=sender,
            timestamp=started + _dt.timedelta(seconds=30 * offset),
            visitorInfo=visitor,
        )
        store.set(MESSAGES_COLLECTION, f"demo-msg-{offset + 1}", message.to_document())

    session = ChatSession(
        botId="demo-bot-1",
        sessionId="session-1",
        startTime=started,
        endTime=started + _dt.timedelta(minutes=15),
        lastActivity=started + _dt.timedelta(minutes=1),
        messageCount=len(transcript),
        converted=True,
        visitorInfo=visitor,
    )
    store.set(SESSIONS_COLLECTION, session_document_id("demo-bot-1", "session-1"), session.to_document())
    logger.info("Seeded demo data: %d bots", len(bots))
