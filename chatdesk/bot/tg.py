"""
Simple Telegram Bot API client using aiohttp.

Only what the support backend needs: sending messages, registering the
webhook and parsing incoming updates.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import aiohttp

from chatdesk.logger import root_logger

log = root_logger.debug

TELEGRAM_API_URL = "https://api.telegram.org"


class MessageSender(Protocol):
    """Opaque "send text to recipient" capability; returns False on failure."""

    async def send_message(self, chat_id: int | str, text: str) -> bool: ...


@dataclass
class User:
    """Telegram user."""

    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None


@dataclass
class Chat:
    """Telegram chat."""

    id: int
    type: str


@dataclass
class Message:
    """Telegram message."""

    message_id: int
    chat: Chat
    from_user: Optional[User] = None
    text: Optional[str] = None
    date: int = 0


@dataclass
class Update:
    """Telegram update."""

    update_id: int
    message: Optional[Message] = None


def parse_update(update_data: Dict[str, Any]) -> Update:
    """
    Parse update data from Telegram API.

    Raises:
        KeyError, TypeError: If the payload is not a Telegram update
    """
    message = None
    if update_data.get("message"):
        message = parse_message(update_data["message"])

    return Update(update_id=update_data["update_id"], message=message)


def parse_message(message_data: Dict[str, Any]) -> Message:
    """Parse message data from Telegram API."""
    chat = Chat(id=message_data["chat"]["id"], type=message_data["chat"].get("type", "private"))

    from_user = None
    if "from" in message_data:
        from_user = User(
            id=message_data["from"]["id"],
            username=message_data["from"].get("username"),
            first_name=message_data["from"].get("first_name"),
        )

    return Message(
        message_id=message_data.get("message_id", 0),
        chat=chat,
        from_user=from_user,
        text=message_data.get("text"),
        date=message_data.get("date", 0),
    )


class TelegramBot:
    """
    Telegram Bot API client.

    The aiohttp session is created on first use and closed by `close()` at
    application shutdown. Transport failures never raise out of
    `send_message`, they are logged and reported as False.
    """

    def __init__(self, token: str, timeout: float = 10.0, api_url: str = TELEGRAM_API_URL):
        """
        Initialize the bot.

        Args:
            token: Telegram bot token
            timeout: Total timeout for one Bot API request, seconds
            api_url: Bot API base URL
        """
        self.token = token
        self.base_url = f"{api_url}/bot{token}"
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self.session

    async def close(self) -> None:
        """Close the bot session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def _call(self, method: str, data: Dict[str, Any]) -> Optional[Any]:
        try:
            async with self._get_session().post(f"{self.base_url}/{method}", json=data) as response:
                if response.status != 200:
                    log(f"{method} error: HTTP {response.status}")
                    return None

                result = await response.json()
                if not result.get("ok"):
                    log(f"{method} error: {result.get('description')}")
                    return None

                return result.get("result", True)

        except Exception as e:
            root_logger.error(f"Error calling {method}: {e}")
            return None

    async def send_message(self, chat_id: int | str, text: str, parse_mode: Optional[str] = None) -> bool:
        """
        Send a message to a chat.

        Args:
            chat_id: Chat ID
            text: Message text
            parse_mode: Parse mode (Markdown, HTML, etc.)

        Returns:
            True if Telegram accepted the message
        """
        data: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            data["parse_mode"] = parse_mode

        return await self._call("sendMessage", data) is not None

    async def set_webhook(self, url: str, drop_pending_updates: bool = False) -> bool:
        """
        Set webhook URL for the bot.

        Args:
            url: HTTPS URL to send updates to
            drop_pending_updates: Drop all pending updates

        Returns:
            True on success
        """
        data = {"url": url, "drop_pending_updates": drop_pending_updates}
        ok = await self._call("setWebhook", data) is not None
        if ok:
            root_logger.info(f"Telegram webhook set to {url}")
        return ok
