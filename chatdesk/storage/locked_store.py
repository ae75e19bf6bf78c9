"""Файловое хранилище с блокировками по ресурсам.

Все операции над одним ресурсом (файлом) выполняются строго по очереди,
запись JSON атомарная: временный файл + rename. Блокировки живут внутри
процесса, второй процесс с тем же DATABASE_PATH не защищен.
"""

import asyncio
import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, TypeVar

from chatdesk.logger import root_logger

log = root_logger.debug

T = TypeVar("T")

DEFAULT_FILE_PREFIX = "chatdesk"


class StorageError(Exception):
    """Ошибка чтения/записи хранилища (кроме отсутствующего файла)"""

    pass


@dataclass(frozen=True)
class StoragePaths:
    """Пути к трем файлам хранилища."""

    directory: Path
    messages: Path
    analytics: Path
    sessions: Path

    @classmethod
    def from_prefix(cls, database_path: str | os.PathLike) -> "StoragePaths":
        """
        Вычисляет пути из DATABASE_PATH.

        `./data/chat.db` -> `./data/chat-messages.jsonl` и т.д.,
        `./data` -> `./data/chatdesk-messages.jsonl` и т.д.
        """
        resolved = Path(database_path).expanduser().resolve()
        if resolved.suffix:
            directory, prefix = resolved.parent, resolved.stem
        else:
            directory, prefix = resolved, DEFAULT_FILE_PREFIX

        return cls(
            directory=directory,
            messages=directory / f"{prefix}-messages.jsonl",
            analytics=directory / f"{prefix}-analytics.json",
            sessions=directory / f"{prefix}-sessions.json",
        )


class LockedFileStore:
    """Примитив хранения: очередь на ресурс + атомарная запись JSON."""

    def __init__(self, database_path: str | os.PathLike) -> None:
        self.paths = StoragePaths.from_prefix(database_path)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._initialized = False

    def ensure_initialized(self) -> None:
        """Создает директорию и пустые файлы ресурсов."""
        if self._initialized:
            return

        self.paths.directory.mkdir(parents=True, exist_ok=True)
        if not self.paths.messages.exists():
            self.paths.messages.write_text("", encoding="utf-8")
        for path in (self.paths.analytics, self.paths.sessions):
            if not path.exists():
                self._write_json_sync(path, {})

        self._initialized = True
        log(f"📁 Хранилище готово: {self.paths.directory}")

    async def with_lock(self, resource_key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Выполняет operation эксклюзивно относительно других операций над resource_key.

        Ожидающие обслуживаются в порядке поступления. Исключение операции
        пробрасывается вызывающему, блокировка при этом освобождается.
        """
        self.ensure_initialized()

        lock = self._locks.get(resource_key)
        if lock is None:
            lock = self._locks[resource_key] = asyncio.Lock()
        self._lock_users[resource_key] = self._lock_users.get(resource_key, 0) + 1

        try:
            async with lock:
                return await operation()
        finally:
            self._lock_users[resource_key] -= 1
            if self._lock_users[resource_key] == 0:
                del self._lock_users[resource_key]
                del self._locks[resource_key]

    def active_locks(self) -> List[str]:
        """Ресурсы, которые сейчас кем-то удерживаются или ожидаются."""
        return list(self._locks)

    async def read_json(self, path: Path, default: Any) -> Any:
        """
        Читает JSON-файл.

        Отсутствующий файл инициализируется значением default, пустой файл
        читается как default. Битый JSON и прочие ошибки ввода-вывода -
        StorageError, файл при этом не перезаписывается.
        """
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            log(f"📄 {path.name} не найден, создаем со значением по умолчанию")
            await self.write_json(path, default)
            return default
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

        if not raw.strip():
            return default

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Malformed JSON in {path}: {e}") from e

    async def write_json(self, path: Path, value: Any) -> None:
        """Атомарно записывает value: читатель видит либо старую, либо новую версию."""
        try:
            await asyncio.to_thread(self._write_json_sync, path, value)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    @staticmethod
    def _write_json_sync(path: Path, value: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(value, ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(prefix=f"{path.name}.tmp-", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def append_line(self, path: Path, record: Dict[str, Any]) -> None:
        """Дописывает одну JSON-запись и перевод строки."""
        line = json.dumps(record, ensure_ascii=False) + "\n"

        def _append() -> None:
            with open(path, "a", encoding="utf-8") as f:
                f.write(line)
                f.flush()

        try:
            await asyncio.to_thread(_append)
        except OSError as e:
            raise StorageError(f"Failed to append to {path}: {e}") from e

    async def read_lines(self, path: Path) -> List[Dict[str, Any]]:
        """
        Читает построчный JSON-файл.

        Строки, которые не парсятся (обрыв записи при падении), пропускаются.
        """
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            await self.truncate(path)
            return []
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

        records: List[Dict[str, Any]] = []
        skipped = 0
        for line in raw.splitlines():
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                skipped += 1
                continue
            if isinstance(record, dict):
                records.append(record)
            else:
                skipped += 1

        if skipped:
            log(f"⚠️ {path.name}: пропущено {skipped} поврежденных строк")
        return records

    async def truncate(self, path: Path) -> None:
        """Очищает построчный файл (сброс данных, тесты)."""
        try:
            await asyncio.to_thread(path.write_text, "", encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to truncate {path}: {e}") from e
