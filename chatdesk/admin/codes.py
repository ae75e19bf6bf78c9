"""Одноразовые коды входа в админку (только в памяти процесса)."""

import secrets
from dataclasses import dataclass
from typing import Dict

from chatdesk.logger import root_logger
from chatdesk.storage.clock import Clock, now_ms

log = root_logger.debug

CODE_LENGTH = 6
DEFAULT_CODE_TTL_MS = 5 * 60 * 1000
DEFAULT_MAX_ATTEMPTS = 5


@dataclass
class PendingCode:
    code: str
    expires_at: int
    failed_attempts: int = 0


class OneTimeCodeManager:
    """
    Выдача и проверка 6-значных кодов по Telegram ID.

    Код погашается при успешной проверке, при проверке после истечения и
    после max_attempts неверных попыток. Перезапуск процесса сбрасывает
    все выданные коды.
    """

    def __init__(
        self,
        ttl_ms: int = DEFAULT_CODE_TTL_MS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Clock = now_ms,
    ) -> None:
        self.ttl_ms = ttl_ms
        self.max_attempts = max_attempts
        self._clock = clock
        self._codes: Dict[str, PendingCode] = {}

    def issue(self, identity: str) -> str:
        """Создает новый код, предыдущий код этого пользователя перестает действовать."""
        low = 10 ** (CODE_LENGTH - 1)
        code = str(low + secrets.randbelow(9 * low))
        self._codes[str(identity)] = PendingCode(code=code, expires_at=self._clock() + self.ttl_ms)
        log(f"🔑 Выдан код входа для {identity}")
        return code

    def verify(self, identity: str, code: str) -> bool:
        """
        Проверяет код.

        Returns:
            True только для точного совпадения с действующим кодом
        """
        identity = str(identity)
        pending = self._codes.get(identity)
        if pending is None:
            return False

        if self._clock() >= pending.expires_at:
            del self._codes[identity]
            log(f"⌛ Код для {identity} истек")
            return False

        if secrets.compare_digest(pending.code, str(code)):
            del self._codes[identity]
            return True

        pending.failed_attempts += 1
        if pending.failed_attempts >= self.max_attempts:
            del self._codes[identity]
            root_logger.warning(f"Login code for {identity} revoked after {pending.failed_attempts} failed attempts")
        return False

    def has_pending(self, identity: str) -> bool:
        return str(identity) in self._codes
