"""chatdesk: customer support chat backend"""

from . import admin, bot, chat, llm, storage

__all__ = ["admin", "bot", "chat", "llm", "storage"]
