from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional
import datetime


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class DocumentModel(BaseModel):
    """Model stored as one document; ``id`` is the document key, not a field."""

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"id"}, exclude_none=True)

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]):
        return cls(**{**data, "id": doc_id})


# --- Bot profile ---

class BotTheme(BaseModel):
    primaryColor: str = "#3B82F6"
    secondaryColor: str = "#F3F4F6"
    fontFamily: str = "Inter, Arial, sans-serif"
    borderRadius: str = "12px"


class BotProfileFields(BaseModel):
    """Editable fields of a bot, shared by the stored profile and the create payload."""

    botName: str = ""
    businessName: str = ""
    businessType: str = ""
    businessDescription: str = ""
    website: str = ""
    targetAudience: str = ""
    keyProducts: str = ""
    conversationGoals: str = ""
    brandTone: str = ""
    customInstructions: str = ""
    welcomeMessage: str = ""
    fallbackMessage: str = ""
    theme: BotTheme = Field(default_factory=BotTheme)
    isActive: bool = True


class BotProfileCreate(BotProfileFields):
    model_config = ConfigDict(extra="forbid")

    botName: str = Field(..., min_length=1)


class BotProfile(BotProfileFields, DocumentModel):
    id: Optional[str] = None
    userId: Optional[str] = None
    createdAt: Optional[datetime.datetime] = None
    lastModified: Optional[datetime.datetime] = None

    def public_config(self) -> "PublicBotConfig":
        return PublicBotConfig(
            id=self.id,
            businessName=self.businessName,
            welcomeMessage=self.welcomeMessage,
            fallbackMessage=self.fallbackMessage,
            theme=self.theme,
            isActive=self.isActive,
        )


class PublicBotConfig(BaseModel):
    """The subset of a bot the embed script is allowed to see."""

    id: str
    businessName: str
    welcomeMessage: str
    fallbackMessage: str
    theme: BotTheme
    isActive: bool


class BotThemeUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    primaryColor: Optional[str] = None
    secondaryColor: Optional[str] = None
    fontFamily: Optional[str] = None
    borderRadius: Optional[str] = None


class BotProfileUpdate(BaseModel):
    """Partial update of a bot profile; unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    botName: Optional[str] = Field(None, min_length=1)
    businessName: Optional[str] = None
    businessType: Optional[str] = None
    businessDescription: Optional[str] = None
    website: Optional[str] = None
    targetAudience: Optional[str] = None
    keyProducts: Optional[str] = None
    conversationGoals: Optional[str] = None
    brandTone: Optional[str] = None
    customInstructions: Optional[str] = None
    welcomeMessage: Optional[str] = None
    fallbackMessage: Optional[str] = None
    theme: Optional[BotThemeUpdate] = None
    isActive: Optional[bool] = None

    def apply_to(self, bot: BotProfile, now: Optional[datetime.datetime] = None) -> BotProfile:
        """Return a copy of ``bot`` with only the explicitly provided fields replaced.

        ``null`` values count as "not provided".
        """
        changes = self.model_dump(exclude_unset=True, exclude_none=True, exclude={"theme"})
        if self.theme is not None:
            theme_changes = self.theme.model_dump(exclude_unset=True, exclude_none=True)
            changes["theme"] = bot.theme.model_copy(update=theme_changes)
        changes["lastModified"] = now or _utcnow()
        return bot.model_copy(update=changes)


# --- Chat ---

class VisitorInfo(BaseModel):
    page: Optional[str] = None
    userAgent: Optional[str] = None


class ChatMessage(DocumentModel):
    id: Optional[str] = None
    botId: str
    sessionId: str
    message: str
    sender: Literal["user", "bot"]
    timestamp: datetime.datetime = Field(default_factory=_utcnow)
    visitorInfo: Optional[VisitorInfo] = None


class ChatSession(DocumentModel):
    id: Optional[str] = None
    botId: str
    sessionId: str
    startTime: datetime.datetime = Field(default_factory=_utcnow)
    endTime: Optional[datetime.datetime] = None
    lastActivity: Optional[datetime.datetime] = None
    messageCount: int = 0
    converted: bool = False
    visitorInfo: Optional[VisitorInfo] = None


class HistoryTurn(BaseModel):
    role: Literal["user", "model"]
    text: str

    @classmethod
    def from_message(cls, message: ChatMessage) -> "HistoryTurn":
        return cls(role="user" if message.sender == "user" else "model", text=message.message)


# --- HTTP payloads ---

class ChatRequest(BaseModel):
    # Presence is checked by the turn handler so that a missing field is a 400, not a 422
    message: Optional[str] = None
    sessionId: Optional[str] = None
    visitorInfo: Optional[VisitorInfo] = None


class ChatResponse(BaseModel):
    response: str
    messageId: str


class AnalyticsSummary(BaseModel):
    totalSessions: int
    totalMessages: int
    conversions: int
    conversionRate: float
    averageMessagesPerSession: float
    sessions: List[ChatSession] = []
    messages: List[ChatMessage] = []


class LLMHealth(BaseModel):
    configured: bool
    reachable: bool
