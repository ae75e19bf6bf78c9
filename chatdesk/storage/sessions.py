"""Хранилище админских сессий (JSON-файл, ключ - хеш токена)."""

import hashlib
import secrets
from typing import Any, Dict, Optional

from chatdesk.logger import root_logger

from .clock import Clock, now_ms
from .locked_store import LockedFileStore, StorageError
from .models import AdminSession, IssuedToken

log = root_logger.debug

SESSIONS_RESOURCE = "sessions"
DEFAULT_SESSION_TTL_MS = 24 * 60 * 60 * 1000


def hash_token(token: str) -> str:
    """SHA-256 токена: по украденному файлу сессий войти нельзя."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AdminSessionStore:
    """Менеджер админских сессий с хранением в файле."""

    def __init__(self, store: LockedFileStore, clock: Clock = now_ms) -> None:
        self._store = store
        self._path = store.paths.sessions
        self._clock = clock

    async def _read(self) -> Dict[str, Dict[str, Any]]:
        data = await self._store.read_json(self._path, {})
        if not isinstance(data, dict):
            raise StorageError(f"Sessions file {self._path} must contain a JSON object")
        return data

    async def create(self, identity: str, ttl_ms: int = DEFAULT_SESSION_TTL_MS) -> IssuedToken:
        """
        Создает новую сессию.

        Args:
            identity: Telegram ID администратора
            ttl_ms: Время жизни сессии в миллисекундах

        Returns:
            IssuedToken с токеном в открытом виде (больше нигде не доступен)
        """
        token = secrets.token_hex(32)
        token_hash = hash_token(token)
        now = self._clock()
        expires_at = now + ttl_ms

        async def _create() -> None:
            sessions = await self._read()
            sessions[token_hash] = {
                "telegramId": str(identity),
                "createdAt": now,
                "expiresAt": expires_at,
                "lastActivity": now,
            }
            await self._store.write_json(self._path, sessions)

        await self._store.with_lock(SESSIONS_RESOURCE, _create)
        log(f"🔐 Создана админская сессия для {identity}")
        return IssuedToken(token=token, expiresAt=expires_at)

    async def lookup(self, token: Optional[str]) -> Optional[AdminSession]:
        """
        Находит сессию по токену.

        Просроченная сессия удаляется при первом обращении, у живой
        обновляется lastActivity.

        Args:
            token: Токен из заголовка Authorization

        Returns:
            Метаданные сессии или None если не найдена/просрочена
        """
        if not token:
            return None

        token_hash = hash_token(token)

        async def _lookup() -> Optional[AdminSession]:
            sessions = await self._read()
            session = sessions.get(token_hash)
            if not session:
                return None

            now = self._clock()
            if now >= session["expiresAt"]:
                del sessions[token_hash]
                await self._store.write_json(self._path, sessions)
                log(f"⌛ Сессия {token_hash[:8]}… истекла и удалена")
                return None

            session["lastActivity"] = now
            await self._store.write_json(self._path, sessions)
            return AdminSession(tokenHash=token_hash, **session)

        return await self._store.with_lock(SESSIONS_RESOURCE, _lookup)

    async def revoke(self, token: str) -> bool:
        """
        Удаляет сессию (выход из админки).

        Returns:
            True если сессия удалена, False если не найдена
        """
        token_hash = hash_token(token)

        async def _revoke() -> bool:
            sessions = await self._read()
            if token_hash not in sessions:
                return False
            del sessions[token_hash]
            await self._store.write_json(self._path, sessions)
            return True

        return await self._store.with_lock(SESSIONS_RESOURCE, _revoke)

    async def clear(self) -> None:
        """Удаляет все сессии."""

        async def _clear() -> None:
            await self._store.write_json(self._path, {})

        await self._store.with_lock(SESSIONS_RESOURCE, _clear)
