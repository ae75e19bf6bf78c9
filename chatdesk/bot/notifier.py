"""
Admin notifications delivered through the Telegram bot.
"""

from typing import Optional

from chatdesk.bot.tg import MessageSender
from chatdesk.logger import root_logger
from chatdesk.storage.models import Role

log = root_logger.debug

PREVIEW_LENGTH = 50

_ROLE_LABELS = {
    Role.CHATBOT: "Bot",
    Role.AI: "AI",
    Role.ADMIN: "Admin",
}


class AdminNotifier:
    """
    Sends login codes and new-message alerts to the admin.

    Every method is best-effort: a failed delivery is logged and reported
    as False, never raised.
    """

    def __init__(self, sender: MessageSender, admin_id: Optional[str] = None) -> None:
        self.sender = sender
        self.admin_id = admin_id

    async def send_auth_code(self, identity: str, code: str, ttl_minutes: float = 5) -> bool:
        """Deliver a one-time login code to the given Telegram ID."""
        text = f"🔐 HayDay Admin Panel\n\n🔑 Giriş kodunuz: {code}\n⏰ {ttl_minutes:g} dakika geçerli"
        try:
            sent = await self.sender.send_message(identity, text)
        except Exception as e:
            root_logger.error(f"Telegram send error: {e}")
            return False
        if not sent:
            log(f"⚠️ Код для {identity} не доставлен")
        return sent

    async def notify_new_message(self, user_text: str, reply: str, role: Role) -> bool:
        """Tell the admin that a chat message was answered."""
        if not self.admin_id:
            return False

        preview = user_text if len(user_text) <= PREVIEW_LENGTH else user_text[:PREVIEW_LENGTH] + "..."
        label = _ROLE_LABELS.get(Role(role), "System")
        text = f'💬 Yeni mesaj\n\n👤 "{preview}"\n🤖 {label} yanıtladı'

        try:
            return await self.sender.send_message(self.admin_id, text)
        except Exception as e:
            root_logger.error(f"Telegram notification error: {e}")
            return False
