"""Журнал сообщений: построчный JSON, только добавление."""

import uuid
from typing import Awaitable, Callable, Dict, List, TypeVar

from pydantic import ValidationError

from chatdesk.logger import root_logger

from .locked_store import LockedFileStore
from .models import ConversationSummary, Message

log = root_logger.debug

MESSAGES_RESOURCE = "messages"
CONVERSATION_RESOURCE_PREFIX = "conversation:"

T = TypeVar("T")


class MessageLog:
    """Журнал переписок поверх LockedFileStore."""

    def __init__(self, store: LockedFileStore) -> None:
        self._store = store
        self._path = store.paths.messages

    async def append(self, message: Message) -> Message:
        """
        Записывает сообщение в конец журнала.

        Args:
            message: Сообщение без id

        Returns:
            Сохраненное сообщение с присвоенным id
        """
        stored = message.model_copy(update={"id": str(uuid.uuid4())})

        async def _append() -> None:
            await self._store.append_line(self._path, stored.to_record())

        await self._store.with_lock(MESSAGES_RESOURCE, _append)
        return stored

    async def in_conversation(self, client_id: str, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Выполняет operation эксклюзивно для одного диалога.

        Внутри можно брать блокировки ресурсов: порядок всегда
        "диалог, потом ресурс".
        """
        return await self._store.with_lock(f"{CONVERSATION_RESOURCE_PREFIX}{client_id}", operation)

    async def _read_all(self) -> List[Message]:
        async def _read() -> List[dict]:
            return await self._store.read_lines(self._path)

        records = await self._store.with_lock(MESSAGES_RESOURCE, _read)
        messages: List[Message] = []
        for record in records:
            try:
                messages.append(Message.model_validate(record))
            except ValidationError:
                log(f"⚠️ Пропущена запись с неверной структурой: {str(record)[:80]}")
        return messages

    async def by_client(self, client_id: str) -> List[Message]:
        """Вся переписка клиента по возрастанию timestamp."""
        messages = await self._read_all()
        return sorted((m for m in messages if m.clientId == client_id), key=lambda m: m.timestamp)

    async def after(self, client_id: str, since_timestamp: int) -> List[Message]:
        """Сообщения клиента строго новее since_timestamp (для опроса)."""
        messages = await self._read_all()
        return sorted(
            (m for m in messages if m.clientId == client_id and m.timestamp > since_timestamp),
            key=lambda m: m.timestamp,
        )

    async def active_conversations(self, since_timestamp: int) -> List[ConversationSummary]:
        """
        Диалоги с сообщениями новее since_timestamp.

        Returns:
            Сводки, отсортированные по последней активности (новые первыми)
        """
        grouped: Dict[str, List[Message]] = {}
        for message in await self._read_all():
            if message.timestamp <= since_timestamp:
                continue
            grouped.setdefault(message.clientId, []).append(message)

        summaries = []
        for client_id, client_messages in grouped.items():
            client_messages.sort(key=lambda m: m.timestamp)
            last_message = client_messages[-1]
            summaries.append(
                ConversationSummary(
                    clientId=client_id,
                    lastActivity=last_message.timestamp,
                    messageCount=len(client_messages),
                    lastMessage=last_message,
                )
            )

        summaries.sort(key=lambda s: s.lastActivity, reverse=True)
        return summaries

    async def count(self) -> int:
        """Общее количество сообщений во всех диалогах."""
        return len(await self._read_all())

    async def clear(self) -> None:
        """Очищает журнал. Только для сброса данных и тестов."""

        async def _clear() -> None:
            await self._store.truncate(self._path)

        await self._store.with_lock(MESSAGES_RESOURCE, _clear)
        log("🧹 Журнал сообщений очищен")
