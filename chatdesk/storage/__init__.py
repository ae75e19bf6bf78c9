"""File-backed storage: message log, analytics counters and admin sessions."""

from .analytics import AnalyticsCounters
from .locked_store import LockedFileStore, StorageError, StoragePaths
from .messages import MessageLog
from .models import AdminSession, AnalyticsEntry, ConversationSummary, IssuedToken, Message, Role
from .sessions import AdminSessionStore


async def reset_all(messages: MessageLog, analytics: AnalyticsCounters, sessions: AdminSessionStore) -> None:
    """Сбрасывает все три ресурса по очереди (тесты, ручное обслуживание)."""
    await sessions.clear()
    await messages.clear()
    await analytics.clear()


__all__ = [
    "AdminSession",
    "AdminSessionStore",
    "AnalyticsCounters",
    "AnalyticsEntry",
    "ConversationSummary",
    "IssuedToken",
    "LockedFileStore",
    "Message",
    "MessageLog",
    "Role",
    "StorageError",
    "StoragePaths",
    "reset_all",
]
