"""
Command processor for Telegram webhook updates.
"""

import resource
import sys
import time
from typing import Optional

from chatdesk.bot.tg import MessageSender, Update
from chatdesk.logger import root_logger
from chatdesk.storage.analytics import AnalyticsCounters
from chatdesk.storage.clock import date_key, now_ms

log = root_logger.debug

HELP_TEXT = "🤖 HayDay Chat Bot aktif!\n\nKomutlar:\n/stats - İstatistikler\n/ping - Sistem durumu\n/help - Yardım"
UNKNOWN_COMMAND_TEXT = "Bilinmeyen komut. /help yazın."


def max_rss_mb() -> int:
    """Peak resident memory of the process in MB."""
    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # macOS reports bytes, Linux kilobytes
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(usage / divisor)


class CommandProcessor:
    """
    Answers admin commands sent to the bot.

    Only messages from the configured admin Telegram ID that start with
    "/" are handled, everything else is ignored silently.
    """

    def __init__(
        self,
        sender: MessageSender,
        analytics: AnalyticsCounters,
        admin_id: Optional[str],
        started_at: Optional[float] = None,
    ) -> None:
        self.sender = sender
        self.analytics = analytics
        self.admin_id = admin_id
        self.started_at = started_at if started_at is not None else time.monotonic()

    async def process_update(self, update: Update) -> bool:
        """
        Process a single Telegram update.

        Returns:
            True if a command reply was sent
        """
        message = update.message
        if message is None or message.from_user is None:
            log(f"Update {update.update_id} has no message, skipping")
            return False

        user_id = str(message.from_user.id)
        text = message.text or ""
        if not self.admin_id or user_id != self.admin_id or not text.startswith("/"):
            return False

        command = text.split()[0].split("@")[0]
        root_logger.info(f"Processing command {command} from admin chat {message.chat.id}")
        reply = await self.build_reply(command)
        return await self.sender.send_message(message.chat.id, reply)

    async def build_reply(self, command: str) -> str:
        if command in ("/start", "/help"):
            return HELP_TEXT
        if command == "/stats":
            stats = await self.analytics.for_date(date_key(now_ms()))
            return (
                f"📊 Bugün: {stats.total} mesaj\n"
                f"🤖 Bot: {stats.chatbot}\n"
                f"🧠 AI: {stats.ai}\n"
                f"👨‍💼 Admin: {stats.admin}"
            )
        if command == "/ping":
            uptime = round(time.monotonic() - self.started_at)
            return f"✅ Sistem çalışıyor\n⏰ Uptime: {uptime} saniye\n💾 Memory: {max_rss_mb()}MB"
        return UNKNOWN_COMMAND_TEXT
