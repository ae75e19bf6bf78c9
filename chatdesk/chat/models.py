import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from chatdesk.storage.models import Message, Role

_WHITESPACE = re.compile(r"\s+")

MIN_CLIENT_ID_LENGTH = 5
MAX_CLIENT_ID_LENGTH = 50
MAX_MESSAGE_LENGTH = 1000


def normalize_text(text: str) -> str:
    """Обрезает пробелы по краям и схлопывает любые пробельные последовательности в один пробел."""
    return _WHITESPACE.sub(" ", text.strip())


class ChatSendRequest(BaseModel):
    """Request model for sending a message in chat."""

    clientId: str = Field(
        ...,
        min_length=MIN_CLIENT_ID_LENGTH,
        max_length=MAX_CLIENT_ID_LENGTH,
        description="Conversation identifier generated by the widget",
    )
    message: str = Field(..., description="The message content")

    @field_validator("message")
    @classmethod
    def _normalize_message(cls, message: str) -> str:
        message = normalize_text(message)
        if not message:
            raise ValueError("Message must not be empty")
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")
        return message


class ChatReply(BaseModel):
    """Response model for a processed chat message."""

    reply: str
    role: Role
    confidence: float
    timestamp: int
    tokensUsed: Optional[int] = Field(None, exclude=True)


class HistoryResponse(BaseModel):
    history: List[Message]


class PollResponse(BaseModel):
    newMessages: List[Message]
    lastTimestamp: int
