"""
Telegram Bot Module.

Bot API transport, admin notifications and webhook command handling.
"""

from .handler import CommandProcessor
from .notifier import AdminNotifier
from .routes import router as bot_router
from .tg import TelegramBot

__all__ = [
    "AdminNotifier",
    "CommandProcessor",
    "TelegramBot",
    "bot_router",
]
