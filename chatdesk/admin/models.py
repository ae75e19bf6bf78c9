from typing import List, Union

from pydantic import BaseModel, Field, field_validator

from chatdesk.storage.models import AnalyticsEntry, ConversationSummary


def _numeric_id(value: Union[str, int]) -> str:
    value = str(value).strip()
    if not value.isdigit():
        raise ValueError("telegramId must be numeric")
    return value


class RequestCodeRequest(BaseModel):
    """Request model for sending a login code."""

    telegramId: str = Field(..., description="Telegram ID of the admin")

    @field_validator("telegramId", mode="before")
    @classmethod
    def _validate_id(cls, value: Union[str, int]) -> str:
        return _numeric_id(value)


class VerifyCodeRequest(BaseModel):
    """Request model for exchanging a login code for a session token."""

    telegramId: str = Field(..., description="Telegram ID of the admin")
    code: str = Field(..., pattern=r"^\d{6}$", description="Six-digit code sent by the bot")

    @field_validator("telegramId", mode="before")
    @classmethod
    def _validate_id(cls, value: Union[str, int]) -> str:
        return _numeric_id(value)


class RequestCodeResponse(BaseModel):
    success: bool
    message: str


class VerifyCodeResponse(BaseModel):
    success: bool
    token: str
    expiresAt: int


class DashboardStats(BaseModel):
    today: AnalyticsEntry
    week: int = Field(..., description="Messages during the last 7 days including today")
    activeConversations: int
    totalConversations: int = Field(..., description="Total number of stored messages")


class DashboardResponse(BaseModel):
    stats: DashboardStats
    activeChats: List[ConversationSummary]
