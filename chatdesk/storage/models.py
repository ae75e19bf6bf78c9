from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Автор сообщения в переписке."""

    USER = "user"
    CHATBOT = "chatbot"
    AI = "ai"
    ADMIN = "admin"
    SYSTEM = "system"


# Роли с собственным счетчиком в аналитике, остальные идут в other
TRACKED_ROLES = (Role.CHATBOT, Role.AI, Role.ADMIN)


class Message(BaseModel):
    """Сообщение в журнале переписки (неизменяемо после записи)."""

    id: Optional[str] = Field(None, description="Unique message identifier, assigned on append")
    timestamp: int = Field(..., description="Milliseconds since epoch")
    clientId: str = Field(..., description="Conversation identifier")
    role: Role = Field(..., description="Author of the message")
    content: str = Field(..., description="Message text")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0, description="Reply confidence")
    tokensUsed: Optional[int] = Field(None, ge=0, description="Tokens spent by the language model")

    def to_record(self) -> dict:
        """Словарь для записи в журнал, пустые необязательные поля не пишутся."""
        return self.model_dump(mode="json", exclude_none=True)


class ConversationSummary(BaseModel):
    """Сводка по активному диалогу для дашборда."""

    clientId: str
    lastActivity: int
    messageCount: int
    lastMessage: Message


class AnalyticsEntry(BaseModel):
    """Счетчики сообщений за один день."""

    date: str
    total: int = 0
    chatbot: int = 0
    ai: int = 0
    admin: int = 0
    other: int = 0


class AdminSession(BaseModel):
    """Метаданные админской сессии (сам токен никогда не хранится)."""

    tokenHash: str
    telegramId: str
    createdAt: int
    expiresAt: int
    lastActivity: int


class IssuedToken(BaseModel):
    """Токен, выданный при входе. Единственный момент, когда он доступен в открытом виде."""

    token: str
    expiresAt: int
